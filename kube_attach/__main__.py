"""
Main entry point for kube-attach.
This file allows running the tool as a module: python -m kube_attach
"""

from .cli.cli import main

if __name__ == "__main__":
    main()
