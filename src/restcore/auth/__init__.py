# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication mechanisms applied by the request pipeline."""

from .base import APITokenAuth, Authenticator, BasicAuth, PATAuth
from .oauth2 import OAuth2Authenticator, OAuth2Config, OAuth2Token, TokenStore

__all__ = [
    "APITokenAuth",
    "Authenticator",
    "BasicAuth",
    "OAuth2Authenticator",
    "OAuth2Config",
    "OAuth2Token",
    "PATAuth",
    "TokenStore",
]
