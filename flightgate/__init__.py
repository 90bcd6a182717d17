"""FlightGate - drone flight conflict evaluation and alternative-route planning."""

__version__ = "0.1.0"
