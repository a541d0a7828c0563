"""Module entry point for `python -m latex_publish`.

Use absolute imports so the module also runs without package context.
"""

from latex_publish.cli import main

if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
