from __future__ import annotations

import argparse
from dataclasses import dataclass
from typing import NoReturn, Sequence

from trt_classifier.core.sample_params import NO_DLA_CORE


PROG = "trt-classifier"

HELP_TEXT = f"""\
Usage: {PROG} [-h or --help] [-d or --datadir=<path to data directory>] [--useDLACore=<int>] [--int8] [--fp16] [--build] [--serialize]
--help          Display help information
--datadir       Specify path to a data directory, overriding the default. This option can be used multiple times to add
                multiple directories. If no data directories are given, the default is to use (weights/, data/)
--useDLACore=N  Specify a DLA engine for layers that support DLA. Value can range from 0 to n-1, where n is the number
                of DLA engines on the platform.
--int8          Run in Int8 mode.
--fp16          Run in FP16 mode.
--build         Build the engine from the ONNX model in the data directories and write it to the engine cache path.
--serialize     Write the loaded engine back to the engine cache path after inference."""


class InvalidArgumentsError(ValueError):
    """Raised instead of exiting when the command line cannot be parsed."""


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        raise InvalidArgumentsError(message)


@dataclass(frozen=True)
class CliArgs:
    help: bool = False
    data_dirs: tuple[str, ...] = ()
    use_dla_core: int = NO_DLA_CORE
    int8: bool = False
    fp16: bool = False
    build: bool = False
    serialize: bool = False


def build_parser() -> argparse.ArgumentParser:
    p = _ArgumentParser(prog=PROG, add_help=False, allow_abbrev=False)
    p.add_argument("-h", "--help", action="store_true")
    p.add_argument("-d", "--datadir", dest="data_dirs", action="append", default=[], metavar="PATH")
    p.add_argument("--useDLACore", dest="use_dla_core", type=int, default=NO_DLA_CORE, metavar="N")
    p.add_argument("--int8", action="store_true")
    p.add_argument("--fp16", action="store_true")
    p.add_argument("--build", action="store_true")
    p.add_argument("--serialize", action="store_true")
    return p


def parse_args(argv: Sequence[str]) -> CliArgs:
    """Parse the command line; raises InvalidArgumentsError on anything unrecognised."""
    namespace, extras = build_parser().parse_known_args(list(argv))
    if extras:
        raise InvalidArgumentsError(f"unrecognized arguments: {' '.join(extras)}")
    return CliArgs(
        help=namespace.help,
        data_dirs=tuple(namespace.data_dirs),
        use_dla_core=namespace.use_dla_core,
        int8=namespace.int8,
        fp16=namespace.fp16,
        build=namespace.build,
        serialize=namespace.serialize,
    )


def print_help_info() -> None:
    print(HELP_TEXT)
