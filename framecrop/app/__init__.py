"""Host-facing application facade and state objects.

This package implements the host↔engine boundary:
- Single session object: `CropEngine` (explicit methods plus `dispatch(cmd, payload)`)
- UI binding via the `CropState` QObject (engine.state)
- Engine→host notifications via engine signals (imageLoaded / loadFailed / cleared)
"""
