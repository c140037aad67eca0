#!/usr/bin/env python
# encoding: utf-8
"""
Qt user interface for the timezone applet.

``model`` holds the Qt-free state (configuration codec, clock board, editor);
``view`` holds the widgets and ``controller`` wires them to the settings
store, the refresh timer and the avatar downloads.
"""
