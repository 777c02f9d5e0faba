"""
Test suite for bartercart

Contains:
- tests/unit/          : Unit tests for carts, settlement math, contracts and pre-send gates
"""
