"""routerctl - install and control the vLLM router as a systemd service."""

__version__ = "0.1.0"
