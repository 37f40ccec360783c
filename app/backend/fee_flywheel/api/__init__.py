"""
HTTP surface: pass trigger, activity feed and health.
"""
