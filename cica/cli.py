"""Command line interface for cica."""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, TextIO

import numpy as np

from cica.color_space import ColorSpace, ColorSpaceKind, Hsv, Lab, Srgb
from cica.kmeans import kmeans_pp
from cica.types import CicaError, KMeansResult

logger = logging.getLogger(__name__)

PROMPT = "> "

HELP_TEXT = """Available commands:
  srgb <r> <g> <b>  Convert from sRGB (0.0-1.0)
  xyz <x> <y> <z>   Convert from CIE XYZ (0.0-1.0)
  lab <l> <a> <b>   Convert from CIE Lab (0-100, -128-127, -128-127)
  hsv <h> <s> <v>   Convert from HSV (h: 0-360, s: 0-1, v: 0-1)
  help              Show this help message
  quit / exit       Exit the program

Examples:
  > srgb 1.0 0.5 0.0
  > xyz 0.5 0.5 0.5
  > lab 50 25 -10
  > hsv 180 0.5 0.8"""

COMPONENT_NAMES = {
    ColorSpaceKind.SRGB: ("r", "g", "b"),
    ColorSpaceKind.XYZ: ("x", "y", "z"),
    ColorSpaceKind.LAB: ("l", "a", "b"),
    ColorSpaceKind.HSV: ("h", "s", "v"),
}


class CommandError(CicaError):
    """Raised for malformed interactive commands or CSV input."""
    pass


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog='cica',
        description='Color space conversion and k-means++ color clustering',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  cica convert                      # interactive mode
  cica convert lab 50 25 -10        # convert once
  cica convert lab 50 -1e-3 0       # exponent notation
  cica kmeans -k 5 -s 42 -p points.csv
  cat points.csv | cica kmeans -k 5 -s 42
        """,
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable debug logging'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    convert = subparsers.add_parser(
        'convert',
        help='Show a color in sRGB, XYZ, Lab and HSV'
    )
    convert.add_argument(
        'color',
        nargs=argparse.REMAINDER,
        help='Optional "<space> <c0> <c1> <c2>"; starts interactive mode when omitted'
    )

    kmeans = subparsers.add_parser(
        'kmeans',
        help='Cluster 4D points from CSV with k-means++'
    )
    kmeans.add_argument(
        '-k',
        type=int,
        required=True,
        help='Number of clusters'
    )
    kmeans.add_argument(
        '-s', '--seed',
        type=int,
        required=True,
        help='Random seed for reproducibility'
    )
    kmeans.add_argument(
        '-p', '--path',
        type=str,
        default=None,
        help='Input CSV file (reads from stdin if not specified)'
    )

    return parser


def parse_and_process(line: str) -> Optional[str]:
    """
    Handle one interactive command.

    Returns:
        None for quit/exit, otherwise the text to print (may be empty)

    Raises:
        CommandError: If the command or its values are invalid
    """
    parts = line.split()
    if not parts:
        return ""

    command = parts[0].lower()

    if command == 'help':
        return HELP_TEXT
    if command in ('quit', 'exit'):
        return None

    try:
        kind = ColorSpaceKind.parse(command)
    except ValueError:
        raise CommandError(
            f"Unknown command: '{command}'. Type 'help' for available commands."
        ) from None

    names = COMPONENT_NAMES[kind]
    if len(parts) != 4:
        raise CommandError(f"Usage: {command} <{names[0]}> <{names[1]}> <{names[2]}>")

    values = [parse_float(text, name) for text, name in zip(parts[1:], names)]
    color = ColorSpace.from_components(kind, *values)
    return format_all_color_spaces(color)


def parse_float(text: str, name: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise CommandError(f"Invalid value for '{name}': '{text}'") from None
    if not np.isfinite(value):
        raise CommandError(f"Invalid value for '{name}': '{text}' is not finite")
    return value


def format_all_color_spaces(color: ColorSpace) -> str:
    """Render a color in all four spaces, converting through XYZ."""
    xyz = color.to_xyz()
    srgb = Srgb.from_xyz(xyz)
    lab = Lab.from_xyz(xyz)
    hsv = Hsv.from_xyz(xyz)

    return (
        f"sRGB: ({srgb.r:.6f}, {srgb.g:.6f}, {srgb.b:.6f})\n"
        f"XYZ:  ({xyz.x:.6f}, {xyz.y:.6f}, {xyz.z:.6f})\n"
        f"Lab:  ({lab.l:.6f}, {lab.a:.6f}, {lab.b:.6f})\n"
        f"HSV:  ({hsv.h:.6f}°, {hsv.s:.6f}, {hsv.v:.6f})"
    )


def run_interactive(stdin: TextIO, stdout: TextIO, stderr: TextIO) -> int:
    """Read commands until quit/exit or end of input."""
    print("Color Space Converter (Interactive Mode)", file=stdout)
    print("Type 'help' for available commands, 'quit' to exit.\n", file=stdout)
    stdout.write(PROMPT)
    stdout.flush()

    for raw in stdin:
        line = raw.strip()
        if not line:
            continue

        try:
            output = parse_and_process(line)
        except CicaError as e:
            print(f"Error: {e}", file=stderr)
        else:
            if output is None:
                break
            if output:
                print(output, file=stdout)

        stdout.write(PROMPT)
        stdout.flush()

    print("\nGoodbye!", file=stdout)
    return 0


def read_points_csv(text: str) -> np.ndarray:
    """
    Parse CSV points with 3 or 4 columns.

    Lines starting with '#' and blank lines are skipped. A first row whose
    first field is not numeric is a header; named columns x, y, z (and
    optionally w) are then picked by name. A missing w column defaults to 1.0
    when the points are clustered.

    Raises:
        CommandError: If a record cannot be parsed
    """
    rows = []
    for raw in text.splitlines():
        stripped = raw.strip()
        if not stripped or stripped.startswith('#'):
            continue
        rows.append([field.strip() for field in stripped.split(',')])

    if not rows:
        return np.empty((0, 4))

    columns = None
    if not _is_number(rows[0][0]):
        header = [name.lower() for name in rows.pop(0)]
        missing = [name for name in ('x', 'y', 'z') if name not in header]
        if missing:
            raise CommandError(f"CSV header is missing column(s): {', '.join(missing)}")
        columns = [header.index(name) for name in ('x', 'y', 'z', 'w') if name in header]

    points = []
    for line_no, row in enumerate(rows, start=1):
        if columns is not None:
            if len(row) != len(header):
                raise CommandError(
                    f"Failed to parse CSV record {line_no}: expected {len(header)} fields, got {len(row)}"
                )
            row = [row[i] for i in columns]
        if len(row) not in (3, 4):
            raise CommandError(
                f"Failed to parse CSV record {line_no}: expected 3 or 4 fields, got {len(row)}"
            )
        try:
            values = [float(v) for v in row]
        except ValueError:
            raise CommandError(f"Failed to parse CSV record {line_no}: {','.join(row)}") from None
        if len(values) == 3:
            values.append(1.0)
        points.append(values)

    return np.array(points, dtype=np.float64)


def _is_number(text: str) -> bool:
    try:
        float(text)
    except ValueError:
        return False
    return True


def format_kmeans_result(result: KMeansResult, k: int, seed: int, total: int) -> str:
    lines: List[str] = [
        "# k-means++ clustering result",
        f"# k = {k}, seed = {seed}, total points = {total}",
        "",
    ]
    for i, (centroid, cluster) in enumerate(zip(result.centroids, result.clusters)):
        c = ", ".join(f"{v:.6f}" for v in centroid)
        lines.append(f"Cluster {i}: center = [{c}], size = {len(cluster)}")

    lines.append("")
    lines.append("# Points per cluster:")
    for i, cluster in enumerate(result.clusters):
        lines.append(f"## Cluster {i}")
        for point in cluster:
            lines.append("  " + ", ".join(f"{v:.6f}" for v in point))

    return "\n".join(lines)


def run_kmeans(k: int, seed: int, path: Optional[str], stdin: TextIO, stdout: TextIO, stderr: TextIO) -> int:
    if path:
        input_path = Path(path)
        try:
            text = input_path.read_text()
        except OSError as e:
            print(f"Error: Failed to open file: {input_path}: {e}", file=stderr)
            return 1
    else:
        text = stdin.read()

    try:
        points = read_points_csv(text)
        logger.debug(f"Read {len(points)} points from {path or 'stdin'}")
        result = kmeans_pp(points, k, seed)
    except CicaError as e:
        print(f"Error: {e}", file=stderr)
        return 1

    print(format_kmeans_result(result, k, seed, len(points)), file=stdout)
    return 0


def main(args=None, stdin: TextIO = None, stdout: TextIO = None, stderr: TextIO = None) -> int:
    """Main entry point."""
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr

    parser = create_parser()
    parsed_args = parser.parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if parsed_args.verbose else logging.WARNING,
        format='%(asctime)s %(name)s %(levelname)s: %(message)s',
        stream=stderr
    )

    if parsed_args.command == 'convert':
        if not parsed_args.color:
            return run_interactive(stdin, stdout, stderr)
        try:
            output = parse_and_process(" ".join(parsed_args.color))
        except CicaError as e:
            print(f"Error: {e}", file=stderr)
            return 1
        if output:
            print(output, file=stdout)
        return 0

    return run_kmeans(parsed_args.k, parsed_args.seed, parsed_args.path, stdin, stdout, stderr)


if __name__ == '__main__':
    sys.exit(main())
