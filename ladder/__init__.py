# SPDX-License-Identifier: GPL-2.0-or-later
"""Ladder: runs matches between submitted bots through an external game
engine and reports one verdict per match."""
