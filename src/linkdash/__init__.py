"""
LinkDash: personal and team link dashboard with zero-knowledge sync.

Your links encrypted with a key only you hold. The storage service
sees an opaque blob under a one-way identifier, nothing more.

Team sharing exports a subset of your dashboard as a short registry
code or a self-contained compressed string.
"""

import os

__version__ = "0.1.0"
__author__ = "linkdash"

LINKDASH_HOME = os.environ.get("LINKDASH_HOME", "~/.linkdash")
