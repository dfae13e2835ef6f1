"""
Audio layer for Enso Piano.

Modules:
- playback: Playback capability and failure-absorbing wrapper
- scheduler: Tick-based progression playback
- dsp: Chord rendering utilities (numpy)
- device: sounddevice output backend
"""
