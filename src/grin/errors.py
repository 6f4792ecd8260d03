"""Typed errors for Grin.

Single source of truth for exit codes lives here.

Policy:
- Errors are small and boring.
- The CLI maps errors to stable exit codes (see EXIT_* constants).
- docs/exit_codes.md is generated from this module (scripts/gen_exit_codes_md.py).
"""

from __future__ import annotations

from dataclasses import dataclass

# -------------------------
# Exit codes (single source)
# -------------------------

EXIT_OK = 0
EXIT_USAGE = 2
EXIT_GENERIC = 10
EXIT_BAD_MAGIC = 11
EXIT_TRUNCATED = 12


@dataclass(frozen=True, slots=True)
class ExitCodeInfo:
    code: int
    name: str
    description: str


EXIT_CODES: tuple[ExitCodeInfo, ...] = (
    ExitCodeInfo(EXIT_OK, "OK", "Success"),
    ExitCodeInfo(EXIT_USAGE, "USAGE", "Usage error (unknown mode, wrong argument count)"),
    ExitCodeInfo(EXIT_GENERIC, "GENERIC", "Generic failure (corrupt tree, I/O error, unexpected error)"),
    ExitCodeInfo(EXIT_BAD_MAGIC, "BAD_MAGIC", "Input is not a Grin file (magic number mismatch)"),
    ExitCodeInfo(EXIT_TRUNCATED, "TRUNCATED", "Grin file ends inside the tree (or before END with --strict)"),
)

_EXIT_CODE_BY_CODE: dict[int, ExitCodeInfo] = {e.code: e for e in EXIT_CODES}


def exit_code_info(code: int) -> ExitCodeInfo | None:
    return _EXIT_CODE_BY_CODE.get(int(code))


def render_exit_codes_markdown() -> str:
    """Render docs/exit_codes.md content."""
    lines: list[str] = []
    lines.append("# Exit codes\n")
    lines.append("> GENERATED FILE. Do not edit manually.\n")
    lines.append("> Source of truth: `src/grin/errors.py` (EXIT_CODES).\n")
    lines.append("> Regenerate: `python scripts/gen_exit_codes_md.py`.\n\n")
    lines.append("These are the CLI exit codes you can rely on.\n\n")
    lines.append("| Code | Name | Meaning |\n")
    lines.append("|---:|---|---|\n")
    for e in sorted(EXIT_CODES, key=lambda x: x.code):
        lines.append(f"| {e.code} | `{e.name}` | {e.description} |\n")
    lines.append("\n## Notes\n")
    lines.append("- Internal errors extend `GrinError` and carry an `exit_code`.\n")
    lines.append("- `--debug` re-raises errors to show full stack traces.\n")
    lines.append(
        "- Without `--strict`, a payload that ends before the END codeword decodes short and exits 0.\n"
    )
    return "".join(lines)


# ---------------
# Typed exceptions
# ---------------


class GrinError(Exception):
    """Base error for Grin."""

    exit_code: int = EXIT_GENERIC


class UsageError(GrinError):
    exit_code = EXIT_USAGE


class CorruptPayload(GrinError):
    exit_code = EXIT_GENERIC


class BadMagic(CorruptPayload):
    exit_code = EXIT_BAD_MAGIC


class TruncatedTree(CorruptPayload):
    exit_code = EXIT_TRUNCATED


class TruncatedPayload(CorruptPayload):
    exit_code = EXIT_TRUNCATED
