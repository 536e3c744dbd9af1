"""Match Tracker reminder engine."""
