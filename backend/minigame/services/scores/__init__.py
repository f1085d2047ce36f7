"""Score domain services: gameplay persistence and score broadcast.

Socket handlers import from here so transport concerns stay separate from
the rules for accepting, recording and fanning out a score.
"""
