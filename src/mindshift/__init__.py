"""
MindshiftR - Conversational Triage Core

This package provides the triage layer of the MindshiftR support
platform: protocol classification of user messages, multi-turn
session state, timed crisis escalation and human handoff.

IMPORTANT: This is a safety-critical healthcare system.
A missed crisis escalation is the highest-severity failure mode.
"""

__version__ = "0.1.0"
__author__ = "MindshiftR Engineering Team"
