# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

from .context import CallContext, call_context, get_call_context

__all__ = ["CallContext", "call_context", "get_call_context"]
