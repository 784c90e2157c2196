"""Game domain services: roles, voting, win evaluation, reconnection,
the session registry and the idle sweeper.

This package holds the game mechanics that the controller drives, keeping
transport concerns separated from core game rules.
"""
