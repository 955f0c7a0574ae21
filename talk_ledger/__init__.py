"""
Talk Ledger - Source Package

A personal finance logging tool: the user describes a transaction in a
free-form Korean sentence, Gemini extracts the structured fields, and the
result is kept in a local ledger that can be exported to a spreadsheet.

DESIGN PRINCIPLES:
1. The LLM extracts → Validation types it → The ledger stores it
2. Fail early, fail visibly
3. A failed extraction never leaves a partial record behind
4. Every mutation is audited
5. Storage and export targets are swappable
"""

__version__ = "1.0.0"
__author__ = "Talk Ledger Team"
