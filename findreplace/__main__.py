"""Module entrypoint for ``python -m findreplace``.

This keeps module-mode execution behavior identical to the ``fr`` script.
All argument parsing and run setup happen in ``findreplace.cli``.
"""

from .cli import main


if __name__ == "__main__":
    main()
