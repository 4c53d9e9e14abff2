# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for the ranking engine.

Domains:
    ranking: Session aggregation, scoring, scope ranking, and weekly history.
"""
