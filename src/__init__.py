"""Parent Manager Backend.

Lets administrators mark users as parents, link them to child accounts and
keep the matching role grants in the host platform's access control.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
