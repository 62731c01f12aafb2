"""Discord guild activity exporter: metrics, RSS and a live photo gallery."""

__version__ = "0.1.0"
