"""Core transcript engine: normalization, merging, event classification, assembly.

WHY: This is the stable heart of the package. Everything else (session
driver, CLI replay, host service, formatters) feeds it events or reads
its state.

HOW: text.py normalizes and filters fragments, merger.py stitches
overlapping fragments, events.py maps realtime events onto delta/final/
error classes, ir.py holds the per-session state, assembler.py applies
events to that state, clock.py makes time injectable.

RULES:
- No network or file I/O in this package
- State types are the contract with formatters, change with care
"""
