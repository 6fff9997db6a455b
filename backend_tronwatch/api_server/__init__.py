"""
API server: FastAPI routes for summations, whales, pools and settings, plus
the /ws room channel.
"""
