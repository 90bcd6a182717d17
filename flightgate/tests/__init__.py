"""Test suite for FlightGate."""
