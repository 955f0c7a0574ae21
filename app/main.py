"""
Streamlit Frontend for Talk Ledger

One screen to type a sentence ("점심 만원, 커피 5천원") and get ledger
entries back, plus the totals, the record list and the Excel export.

DESIGN PRINCIPLES:
1. One input, one button: analysis appends immediately
2. Every record stays editable; edits replace the whole form's values
3. Errors are shown as messages and never change the ledger
4. The ledger lives in a local JSON file; nothing is sent anywhere
   except the sentence itself (to the classifier)
"""

import asyncio
from collections import deque
from datetime import date
from typing import Optional

import streamlit as st

from talk_ledger.agents import ExtractionError
from talk_ledger.audit import configure_logging, create_correlation_id
from talk_ledger.config import get_settings, validate_all_settings
from talk_ledger.ledger import RecordEdit
from talk_ledger.models.transaction import Category, Currency, PaymentMethod, TransactionType
from talk_ledger.orchestrator import LedgerFlow, create_app_components
from talk_ledger.relay import RelayError
from talk_ledger.services.export import ExportError, export_filename
from talk_ledger.services.storage import PersistenceError, StorageError


# Page configuration
st.set_page_config(
    page_title="Talk Ledger",
    page_icon="💬",
    layout="wide",
    initial_sidebar_state="expanded",
)

TYPE_LABELS = {
    TransactionType.INCOME.value: "수입",
    TransactionType.EXPENSE.value: "지출",
    TransactionType.UNKNOWN.value: "미상",
}

# Audit events kept in memory for the settings page
AUDIT_HISTORY_SIZE = 200
XLSX_EXPORT_KEY = "xlsx_export"


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components() -> tuple[LedgerFlow, deque]:
    """Get or create application components (cached)."""
    configure_logging(get_settings().app.log_level)
    audit_events: deque = deque(maxlen=AUDIT_HISTORY_SIZE)
    return create_app_components(audit_sink=audit_events), audit_events


def format_amount(amount, currency: str) -> str:
    if amount is None:
        return "-"
    if currency == Currency.USD.value:
        return f"${amount:,.2f}"
    return f"{amount:,.0f}원"


def main():
    """Main application entry point."""
    flow, audit_events = get_components()

    st.sidebar.title("💬 Talk Ledger")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["✍️ 기록하기", "📒 장부", "⚙️ 설정"],
        index=0,
    )

    st.sidebar.markdown("---")
    st.sidebar.caption(f"기준일: {flow.today().isoformat()}")

    if page == "✍️ 기록하기":
        render_capture_page(flow)
    elif page == "📒 장부":
        render_ledger_page(flow)
    else:
        render_settings_page(audit_events)


def render_summary(flow: LedgerFlow):
    totals, breakdown = flow.summary()

    col1, col2, col3 = st.columns(3)
    col1.metric("수입", f"{totals.income:,.0f}")
    col2.metric("지출", f"{totals.expense:,.0f}")
    col3.metric("잔액", f"{totals.balance:,.0f}")

    if breakdown:
        st.markdown("#### 카테고리별 지출")
        for item in breakdown:
            share = item.total / totals.expense if totals.expense else 0.0
            st.progress(min(max(share, 0.0), 1.0), text=f"{item.category or '미분류'} · {item.total:,.0f}")


def render_capture_page(flow: LedgerFlow):
    """Sentence input and analysis."""
    st.title("✍️ 말로 쓰는 가계부")
    st.markdown("거래를 평소 말하듯 적어 주세요. 여러 건도 한 번에 입력할 수 있습니다.")

    with st.form("analyze_form", clear_on_submit=False):
        text = st.text_area(
            "입력",
            placeholder="예: 오늘 점심 김밥천국 만원 카드, 스타벅스 커피 5천원",
            height=100,
        )
        submitted = st.form_submit_button("분석하기", type="primary")

    if submitted:
        with st.spinner("분석 중..."):
            try:
                records, warnings = run_async(
                    flow.analyze(text, correlation_id=create_correlation_id())
                )
            except RelayError as e:
                st.error(f"분류기 호출 실패 ({e.status_code}): {e}")
            except ExtractionError as e:
                st.error(str(e))
            except StorageError as e:
                st.error(f"장부 저장 실패: {e}")
            else:
                if records:
                    st.session_state.pop(XLSX_EXPORT_KEY, None)
                    st.success(f"{len(records)}건을 기록했습니다.")
                    for record in records:
                        st.markdown(
                            f"- **{TYPE_LABELS[record.type.value]}** "
                            f"{format_amount(record.amount, record.currency.value)} · "
                            f"{record.category or '미분류'} · {record.merchant or '-'} · "
                            f"{record.transaction_date.isoformat() if record.transaction_date else '날짜 미상'}"
                        )
                else:
                    st.info("문장에서 거래를 찾지 못했습니다.")
                for warning in warnings:
                    st.warning(warning)

    st.markdown("---")
    render_summary(flow)


def render_edit_form(form_key: str, initial: RecordEdit) -> Optional[RecordEdit]:
    """Render the record form; returns the entered values when submitted."""
    type_options = [t.value for t in TransactionType]
    currency_options = [c.value for c in Currency]

    with st.form(form_key):
        col1, col2, col3 = st.columns(3)
        with col1:
            type_value = st.selectbox(
                "유형",
                options=type_options,
                index=type_options.index(initial.type) if initial.type in type_options else 2,
                format_func=lambda v: TYPE_LABELS[v],
            )
            amount = st.text_input("금액", value=initial.amount)
            currency = st.selectbox(
                "통화",
                options=currency_options,
                index=currency_options.index(initial.currency) if initial.currency in currency_options else 0,
            )
        with col2:
            category = st.text_input(
                "카테고리",
                value=initial.category,
                help=", ".join(c.value for c in Category),
            )
            merchant = st.text_input("가맹점", value=initial.merchant)
            date_text = st.text_input("날짜 (YYYY-MM-DD)", value=initial.date)
        with col3:
            payment_method = st.text_input(
                "결제수단",
                value=initial.payment_method,
                help=", ".join(p.value for p in PaymentMethod),
            )
            keywords = st.text_input("키워드 (쉼표로 구분)", value=initial.keywords)
            participants = st.text_input("함께한 사람 (쉼표로 구분)", value=initial.participants)

        memo = st.text_input("메모", value=initial.memo)
        confidence = st.text_input("신뢰도 (0~1)", value=initial.confidence)

        if st.form_submit_button("저장"):
            return RecordEdit(
                type=type_value,
                amount=amount,
                currency=currency,
                category=category,
                merchant=merchant,
                date=date_text,
                memo=memo,
                confidence=confidence,
                keywords=keywords,
                payment_method=payment_method,
                participants=participants,
            )
    return None


def render_ledger_page(flow: LedgerFlow):
    """Record list, edits, manual entry and export."""
    st.title("📒 장부")
    render_summary(flow)
    st.markdown("---")

    col1, col2 = st.columns(2)
    with col1:
        if st.button("엑셀 파일 만들기"):
            st.session_state[XLSX_EXPORT_KEY] = flow.export_xlsx()
        if XLSX_EXPORT_KEY in st.session_state:
            st.download_button(
                "엑셀로 내보내기",
                data=st.session_state[XLSX_EXPORT_KEY],
                file_name=export_filename(date.today()),
                mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            )
    with col2:
        if st.button("Google Sheets에 게시"):
            try:
                sheet_count = flow.publish_to_sheets()
                st.success(f"{sheet_count}개 시트를 갱신했습니다.")
            except ExportError as e:
                st.error(str(e))

    with st.expander("➕ 직접 입력"):
        manual = render_edit_form("manual_entry", RecordEdit(date=flow.today().isoformat()))
        if manual is not None:
            try:
                flow.add_manual(manual)
                st.session_state.pop(XLSX_EXPORT_KEY, None)
                st.success("기록했습니다.")
                st.rerun()
            except PersistenceError as e:
                st.error(f"장부 저장 실패: {e}")

    records = flow.store.records()
    if not records:
        st.info("아직 기록이 없습니다. '기록하기'에서 첫 거래를 입력해 보세요.")
        return

    st.markdown(f"### 전체 {len(records)}건")
    for record in records:
        title = (
            f"{record.transaction_date.isoformat() if record.transaction_date else '날짜 미상'} · "
            f"{TYPE_LABELS[record.type.value]} · "
            f"{format_amount(record.amount, record.currency.value)} · "
            f"{record.category or '미분류'} · {record.merchant or '-'}"
        )
        with st.expander(title):
            if record.original_text:
                st.caption(f"원문: {record.original_text}")
            edited = render_edit_form(f"edit_{record.id}", RecordEdit.from_record(record))
            if edited is not None:
                try:
                    flow.edit(record.id, edited)
                    st.session_state.pop(XLSX_EXPORT_KEY, None)
                    st.success("수정했습니다.")
                    st.rerun()
                except StorageError as e:
                    st.error(f"수정 실패: {e}")


def render_settings_page(audit_events: deque):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Gemini (분류기)", "gemini"),
        ("Ledger (로컬 저장소)", "ledger"),
        ("Google Sheets (내보내기, 선택)", "google_sheets"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Connected")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    ledger_settings = get_settings().ledger
    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        f"- 저장 파일: `{ledger_settings.storage_path}`\n"
        f"- 저장 키: `{ledger_settings.storage_key}`\n"
        f"- 릴레이: `{ledger_settings.relay_url or 'Gemini 직접 호출'}`"
    )
    st.markdown(
        "To configure the application, create a `.env` file with your API keys. "
        "See `.env.example` for the required variables."
    )

    if audit_events:
        st.markdown("### Recent activity")
        for event in reversed(list(audit_events)[-20:]):
            st.text(f"{event.timestamp:%H:%M:%S} {event.event_type.value} {event.description}")


if __name__ == "__main__":
    main()
