"""Domain services: conflict detection, appointment state and financial aggregation."""
