import os
import sys

from dirzipper.errors import NotAnInvocation, ZipperError
from dirzipper.zipper import ZipRunner


def _program_name(argv0: str) -> str:
    return os.path.splitext(os.path.basename(argv0))[0]


def cli() -> int:
    runner = ZipRunner()
    try:
        runner.parse_arguments([_program_name(sys.argv[0])] + sys.argv[1:])
    except NotAnInvocation as e:
        print(f"{e} Returning as is.")
        return 0
    except ZipperError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        zip_file_path = runner.run()
    except ZipperError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Created {zip_file_path}")
    return 0
