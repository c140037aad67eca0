"""Model layer for the timezone panel and the preferences window.

Nothing in this package imports Qt, so the configuration format, the clock
board and the editor can be exercised without a display.
"""
