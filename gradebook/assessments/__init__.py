"""
Assessments

Question set generation, test and assignment definitions, the submission
state machine and timed attempts.
"""
