"""
MindShift Infrastructure Layer

Archive persistence, database access, metrics and error tracking.
Archive sinks implement an abstract interface for testability.
"""
