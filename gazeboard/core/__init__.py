"""
gazeboard.core — Constants, configuration, scheduling and logging.
"""
