"""
Core domain models, currency math, and offer contracts.

This module contains the building blocks that are independent
of external systems (trade transport, price lists, inventories).
"""
