"""Entry point for running testsum as a module.

Usage:
    python -m testsum [flags] [--] [go test args]
"""

from testsum.cli import main

if __name__ == "__main__":
    main()
