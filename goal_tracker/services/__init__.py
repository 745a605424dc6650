"""
Goal Tracker services: cycle evaluation, reminder fan-out, rollover and
proactive Teams delivery.
"""
