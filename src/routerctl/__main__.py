"""Allow running as ``python -m routerctl``."""

from routerctl.cli.app import app

if __name__ == "__main__":
    app()
