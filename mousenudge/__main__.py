"""Module entrypoint for `python -m mousenudge`."""

from .main import main

if __name__ == '__main__':
    main()
