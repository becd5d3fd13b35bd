"""Depot application shell: session state, navigation gate and bootstrap.

Import the container from ``depot.app.container``; this package keeps no
module-level state.
"""
