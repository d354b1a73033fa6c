"""ChartSense - chart screenshot analysis with candle-aligned trade timing."""

__version__ = "1.0.0"
