"""
Extraction Contract: classifier instructions

The system instruction sent with every classifier request. It defines the
output schema and the behavioural rules (type cues, amount reading,
relative dates, closed label sets). The anchor date is part of the
instruction so relative dates resolve deterministically.

CRITICAL: The classifier output is still untrusted. Everything it returns
goes through talk_ledger.validation before reaching the ledger.
"""

from datetime import date

from talk_ledger.models.transaction import Category, Currency, PaymentMethod, TransactionType

EXPENSE_CUES = ["구매", "결제", "샀", "썼", "먹었", "마셨", "탔", "빌려줬", "냈", "지출"]
INCOME_CUES = ["받았", "입금", "벌었", "월급", "급여", "용돈", "환불", "팔았"]

SCHEMA_TEXT = """[
  {
    "type": "income" | "expense" | "unknown",
    "amount": number | null,
    "currency": "KRW" | "USD" | "UNKNOWN",
    "category": string,
    "merchant": string,
    "date": "YYYY-MM-DD" | null,
    "memo": string,
    "confidence": number,
    "factors": {
      "keywords": string[],
      "payment_method": string,
      "participants": string[]
    }
  }
]"""


def build_system_prompt(today: date) -> str:
    """Render the classifier instruction for the given anchor date."""
    categories = ", ".join(c.value for c in Category)
    payment_methods = ", ".join(p.value for p in PaymentMethod)
    types = " | ".join(t.value for t in TransactionType)
    currencies = " | ".join(c.value for c in Currency)

    return f"""너는 한국어 가계부 분류기다. 사용자의 자유문장을 분석해서 반드시 JSON 배열만 출력해라.
오늘 날짜: {today.isoformat()}

스키마 (거래 1건당 객체 1개):
{SCHEMA_TEXT}

규칙:
- JSON 외 텍스트 금지
- 문장 안에 서로 다른 거래가 여러 건이면 거래마다 객체를 하나씩 만들어 순서대로 배열에 넣어라. 거래가 없으면 빈 배열 [].
- type ({types}): {", ".join(EXPENSE_CUES)} 등은 expense, {", ".join(INCOME_CUES)} 등은 income. 애매하면 unknown.
- amount: 한글 숫자와 단위를 정수로 바꿔라. 예) 만오천 → 15000, 2만5천 → 25000, 3만원 → 30000, 1,500 → 1500, 3.5k → 3500, 15K → 15000, 2만+5천 → 25000. 금액 단서가 없으면 null. 추측 금지.
- currency ({currencies}): 원/₩ 은 KRW, 달러/$ 는 USD, 알 수 없으면 UNKNOWN.
- date: 오늘, 어제, 그제, N일 전, 이번 주 X요일 같은 표현은 오늘 날짜 기준으로 YYYY-MM-DD 로 바꿔라. 날짜 단서가 없으면 null.
- category: 다음 중 하나: {categories}
- merchant: 상호명이 명시된 경우에만 적고, 아니면 빈 문자열. 지어내지 마라.
- memo: 거래의 핵심을 15자 이내로 요약 (원문 복사 금지).
- confidence: 0~1. type과 amount가 모두 분명하면 0.9 이상, 아니면 더 낮게.
- factors.payment_method: 다음 중 하나: {payment_methods} (언급이 없으면 미상)
- factors.keywords, factors.participants: 문자열 배열, 없으면 []."""
