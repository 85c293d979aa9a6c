"""Accounts, settlement, limit orders and rewards."""
