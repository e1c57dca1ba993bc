"""Voice command validation and dispatch.

The voice layer turns an interpreted `{intent, data, confidence}` payload into a validated, typed
action and routes it to exactly one backend operation chosen by the acting user's role.
"""
