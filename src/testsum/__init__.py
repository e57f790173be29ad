"""testsum: live summaries for ``go test -json`` output."""

__version__ = "0.3.0"
