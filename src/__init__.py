"""EduSynapse Ranking Engine.

Scoring and ranking engine turning study sessions into weekly school,
district, and global leaderboards with archived history.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
