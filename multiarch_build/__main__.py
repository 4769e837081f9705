"""Entry point for `python -m multiarch_build`."""

from multiarch_build.cli import app

if __name__ == "__main__":
    app()
