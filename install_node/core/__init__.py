"""
Core — configuration, models, observability and the install services.
"""
