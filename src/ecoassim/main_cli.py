"""
ecoassim Command-Line Interface entry point.

Provides the main() function that serves as the entry point for the
`ecoassim` command. Handles argument parsing, command dispatch, and
error handling for all CLI operations.
"""

from typing import List, Optional


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for ecoassim CLI.

    Args:
        argv: Argument list (default: ``sys.argv[1:]``).

    Returns:
        Process exit code.
    """
    import sys

    from ecoassim.core.exceptions import EcoAssimError
    from ecoassim.cli import CLIParser

    try:
        parser = CLIParser()
        args = parser.parse_args(argv)
        return args.func(args)

    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130
    except (EcoAssimError, FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    import sys
    sys.exit(main())
