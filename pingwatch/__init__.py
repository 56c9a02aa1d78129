"""pingwatch — network reachability monitor with incident history."""

__version__ = "1.0.0"
