"""Simulated market: instruments, price walk, history and the tick loop."""
