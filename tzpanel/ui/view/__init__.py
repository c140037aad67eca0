"""View layer: the panel popup and the preferences window.

Views only build widgets and emit signals; the controllers in
:mod:`tzpanel.ui.controller` decide what happens next.
"""
