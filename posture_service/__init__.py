"""
POSTURELAB Posture Service

Landmark-driven posture scoring, joint analysis and exercise sessions.
"""
