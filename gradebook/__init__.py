"""
Gradebook - assessment and grading engine for a language-learning classroom.

Sub-packages:
- common: logging, configuration, errors and serialization
- domain: questions, templates and question sources
- assessments: sampler, test definitions, submissions and timed attempts
- reporting: attendance, grade and evaluation aggregation
"""

__version__ = "0.1.0"
