"""HTTP and websocket surface of the moderation service.

The app is created by ``src.api.main.create_app``.
"""
