"""Module entrypoint for ``python -m navsync``.

All argument parsing and panel setup happen in ``navsync.cli``.
"""

from .cli import main


if __name__ == "__main__":
    raise SystemExit(main())
