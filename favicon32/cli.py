"""
Convert an image (raster or SVG) to a 32x32 favicon.

Usage:
  favicon32 logo.png
  favicon32 logo.svg static/favicon.ico --colors 16
"""

import argparse
import logging
import sys

from . import __version__
from .convert import DEFAULT_OUTPUT, convert_file
from .errors import Favicon32Error
from .reader import describe_icon
from .settings import load_env_file, load_settings, parse_colors

logger = logging.getLogger(__name__)

ICO_SUFFIX = '.ico'


def _setup_logging(verbose):
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter('%(levelname)s %(name)s: %(message)s'))
    root = logging.getLogger('favicon32')
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)
    root.propagate = False


def _colors_arg(value):
    try:
        return parse_colors(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc))


def build_parser():
    parser = argparse.ArgumentParser(
        prog='favicon32',
        description='Convert an image to a favicon with the size 32x32',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        'input',
        help='Input image file, SVG or any format Pillow can decode'
    )
    parser.add_argument(
        'output',
        nargs='?',
        default=DEFAULT_OUTPUT,
        help=f'Output file ending with "{ICO_SUFFIX}" (default: {DEFAULT_OUTPUT})'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        default=None,
        help='Log every conversion step'
    )
    parser.add_argument(
        '-c', '--colors',
        type=_colors_arg,
        help='Maximum palette size, 1-256 (default: 256)'
    )
    parser.add_argument(
        '--truecolor',
        action='store_true',
        default=None,
        help='Write a 32-bit icon instead of quantizing to a palette'
    )
    parser.add_argument(
        '--verify',
        action='store_true',
        help='Print the structure of the written icon'
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def main(argv=None):
    """CLI interface"""
    args = build_parser().parse_args(argv)

    try:
        load_env_file()
        settings = load_settings()
    except ValueError as exc:
        # UnicodeDecodeError from a non UTF-8 .env lands here too
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    verbose = settings.verbose if args.verbose is None else args.verbose
    colors = settings.colors if args.colors is None else args.colors
    truecolor = settings.truecolor if args.truecolor is None else args.truecolor
    _setup_logging(verbose)

    if not args.output.lower().endswith(ICO_SUFFIX):
        print(f"The output file has to use the '{ICO_SUFFIX}' suffix", file=sys.stderr)
        return 1

    logger.info("Converting '%s' to '%s'", args.input, args.output)
    try:
        convert_file(args.input, args.output, colors=colors, truecolor=truecolor)
    except Favicon32Error as exc:
        print(f"{exc.kind}: {exc}", file=sys.stderr)
        return 1

    print(f"Output saved to '{args.output}'")

    if args.verify:
        with open(args.output, 'rb') as f:
            for line in describe_icon(f.read()):
                print(line)
    return 0

