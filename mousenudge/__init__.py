"""
MouseNudge - Start/Stop toggle that nudges the mouse cursor

A single button in a window. Pressing Start reads the cursor position and
moves the pointer down by a fixed offset; pressing Stop flips back.
"""

__version__ = "0.1.0"
