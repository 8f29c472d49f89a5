"""
CLI entrypoint for `python -m tsmerge`.
"""

from .cli import main

if __name__ == "__main__":
    import sys
    sys.exit(main())
