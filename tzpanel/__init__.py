#!/usr/bin/env python
# encoding: utf-8
"""World clock tray applet: named timezones with the people who live in them."""

__version__ = "1.0.0"
