"""Grin CLI.

This is the stable CLI entrypoint (console-script: ``grin``).

    grin encode <infile> <outfile>
    grin decode <infile> <outfile> [--strict]
    grin verify <infile> [--full]

A wrong mode, argument count or mode flag prints the usage and touches no file.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from grin.errors import EXIT_GENERIC, EXIT_OK, EXIT_USAGE, GrinError, UsageError

USAGE_LINE = "grin <encode|decode> <infile> <outfile> [--strict]  |  grin verify <infile> [--full]"
USAGE = f"Usage: {USAGE_LINE}"

# mode -> numero di argomenti posizionali dopo il mode
_MODE_ARITY: dict[str, int] = {
    "encode": 2,
    "decode": 2,
    "verify": 1,
}

# flag -> unico mode che lo accetta
_FLAG_MODE: dict[str, str] = {
    "strict": "decode",
    "full": "verify",
}


def _file_encode(input_path: Path, output_path: Path) -> int:
    from grin.engine.container import encode_file

    encode_file(input_path, output_path)
    return EXIT_OK


def _file_decode(input_path: Path, output_path: Path, *, strict: bool) -> int:
    from grin.engine.container import decode_file

    decode_file(input_path, output_path, strict=strict)
    return EXIT_OK


def _file_verify(input_path: Path, *, full: bool) -> int:
    from grin.verify import verify_container_file

    info = verify_container_file(input_path, full=full)
    msg = f"OK leaves={info.leaves} tree_bits={info.tree_bits} size={info.file_size}"
    if info.payload_bytes is not None:
        msg += f" payload_bytes={info.payload_bytes}"
    print(msg)
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="grin", description="Grin Huffman file codec", usage=USAGE_LINE)
    p.add_argument("args", nargs="*", help="<mode> <infile> [<outfile>]")
    p.add_argument("--strict", action="store_true", help="decode: fail if the payload ends before END")
    p.add_argument("--full", action="store_true", help="verify: also decode the whole payload")
    p.add_argument("--debug", action="store_true", help="Show stack traces on errors")
    return p


def _check_args(ns: argparse.Namespace) -> tuple[str, list[Path]]:
    args: list[str] = ns.args
    if not args:
        raise UsageError("missing mode")
    mode = args[0]
    arity = _MODE_ARITY.get(mode)
    if arity is None:
        raise UsageError(f"unknown mode: {mode}")
    if len(args) - 1 != arity:
        raise UsageError(f"{mode}: expected {arity} path(s), got {len(args) - 1}")
    for flag, only_mode in _FLAG_MODE.items():
        if getattr(ns, flag) and mode != only_mode:
            raise UsageError(f"--{flag} is only valid with {only_mode}")
    return mode, [Path(a) for a in args[1:]]


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    p = build_parser()
    ns = p.parse_args(argv)

    try:
        mode, paths = _check_args(ns)
    except UsageError:
        print(USAGE)
        return EXIT_USAGE

    try:
        if mode == "encode":
            return _file_encode(paths[0], paths[1])
        if mode == "decode":
            return _file_decode(paths[0], paths[1], strict=bool(ns.strict))
        if mode == "verify":
            return _file_verify(paths[0], full=bool(ns.full))
        raise AssertionError("unreachable")

    except SystemExit:
        raise
    except GrinError as e:
        if ns.debug:
            raise
        print(f"[grin] {e}", file=sys.stderr)
        return int(getattr(e, "exit_code", EXIT_GENERIC) or EXIT_GENERIC)
    except Exception as e:
        if ns.debug:
            raise
        print(f"[grin] error: {e}", file=sys.stderr)
        return EXIT_GENERIC


if __name__ == "__main__":
    raise SystemExit(main())
