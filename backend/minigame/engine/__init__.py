"""Client-side minigame engine: clock, input mapping and the state machine.

Nothing in here touches Flask or the network; a session is driven by
feeding it key events and clock readings.
"""
