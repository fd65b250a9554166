"""
Push notification fan-out.

- **dispatcher.py**: audience resolution per event and badge counts.
- **audience.py**: token validation and opt-in filtering.
- **push_client.py**: chunked delivery to the Expo push API.
"""
