"""
Services — the install pipeline lives in ``node_install``.
"""
