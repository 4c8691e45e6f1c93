"""Wire names shared with upstream and downstream services.

These strings are a compatibility contract: change them and peers stop
recognising the values we send.
"""

from __future__ import annotations


class HeaderNames:
    X_REQUEST_ID = "x-request-id"
    X_SESSION_ID = "x-session-id"
    X_FORWARDED_FOR = "x-forwarded-for"
    TRUE_CLIENT_IP = "true-client-ip"
    TOKEN = "token"
    X_REQUEST_CHAIN = "x-request-chain"
    X_REQUEST_TIMESTAMP = "x-request-timestamp"
    AUTHORIZATION = "authorization"


class SessionKeys:
    SESSION_ID = "sessionId"
    AUTH_TOKEN = "authToken"
    TOKEN = "token"
    USER_ID = "userId"


class EventKeys:
    TRANSACTION_NAME = "transactionName"
    PATH = "path"
    IP_ADDRESS = "ipAddress"


# Stands in for absent values in audit maps.
MISSING = "-"
