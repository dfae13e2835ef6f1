"""
Core chord engine for Enso Piano.

Modules:
- constants: Note names, modes, tempo bounds, pitch helpers
- models: Immutable data structures (ChordDefinition, ProgressionEntry, etc.)
- theory: Diatonic/borrowed chords, numerals, degree labels, frequencies
- modifiers: Modifier catalog, conflict resolution, interval calculation
- chord_state: Locked/transient modifier state per chord
- gestures: Tap / long-press classification
- progression: Progression container
- settings: Runtime settings
- timers: Cancellable timer capability
"""
