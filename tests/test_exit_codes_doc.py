from __future__ import annotations

from pathlib import Path

from grin.errors import (
    EXIT_CODES,
    BadMagic,
    CorruptPayload,
    GrinError,
    TruncatedPayload,
    TruncatedTree,
    UsageError,
    exit_code_info,
    render_exit_codes_markdown,
)


def test_exit_codes_doc_is_up_to_date() -> None:
    doc = Path(__file__).resolve().parents[1] / "docs" / "exit_codes.md"
    assert doc.read_text(encoding="utf-8") == render_exit_codes_markdown(), (
        "docs/exit_codes.md is stale: run python scripts/gen_exit_codes_md.py"
    )


def test_exit_codes_are_unique_and_mapped() -> None:
    codes = [e.code for e in EXIT_CODES]
    assert len(codes) == len(set(codes))
    for exc in (GrinError, UsageError, CorruptPayload, BadMagic, TruncatedTree, TruncatedPayload):
        assert exit_code_info(exc.exit_code) is not None


def test_error_hierarchy() -> None:
    for exc in (BadMagic, TruncatedTree, TruncatedPayload):
        assert issubclass(exc, CorruptPayload)
    assert issubclass(CorruptPayload, GrinError)
    assert issubclass(UsageError, GrinError)
