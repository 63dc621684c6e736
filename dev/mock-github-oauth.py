#!/usr/bin/env python3
"""
Mock GitHub OAuth server for local development.

Point sessiongate at it with:

    OAUTH_AUTH_URL=http://127.0.0.1:19094/login/oauth/authorize
    OAUTH_TOKEN_URL=http://127.0.0.1:19094/login/oauth/access_token
    OAUTH_EMAILS_URL=http://127.0.0.1:19094/user/emails
    OAUTH_REDIRECT_URL=http://127.0.0.1:8080/oauth/github/callback

The authorize step skips the consent screen and redirects straight back with a code.
MOCK_EMAIL picks the primary verified address (default: dev@example.com).
"""

import os
import sys
from urllib.parse import urlencode

from flask import Flask, jsonify, redirect, request

app = Flask(__name__)

MOCK_EMAIL = os.getenv("MOCK_EMAIL", "dev@example.com")


@app.route("/login/oauth/authorize", methods=["GET"])
def authorize():
    """Approve immediately and bounce back to the client's callback."""
    redirect_uri = request.args.get("redirect_uri") or "http://127.0.0.1:8080/oauth/github/callback"
    params = {"code": "mock-code", "state": request.args.get("state", "")}
    return redirect(f"{redirect_uri}?{urlencode(params)}", code=302)


@app.route("/login/oauth/access_token", methods=["POST"])
def access_token():
    if request.form.get("code") != "mock-code":
        return jsonify({"error": "bad_verification_code"})
    return jsonify({"access_token": "mock-access-token", "token_type": "bearer", "scope": "user:email"})


@app.route("/user/emails", methods=["GET"])
def emails():
    if request.headers.get("Authorization") != "Bearer mock-access-token":
        return jsonify({"message": "Requires authentication"}), 401
    return jsonify(
        [
            {"email": MOCK_EMAIL, "verified": True, "primary": True, "visibility": "private"},
            {"email": "noreply@users.noreply.github.com", "verified": True, "primary": False, "visibility": None},
        ]
    )


@app.route("/healthz")
def health():
    """Health check endpoint."""
    return jsonify({"status": "ok"})


if __name__ == "__main__":
    print("Mock GitHub OAuth starting on http://0.0.0.0:19094", file=sys.stderr)
    app.run(host="0.0.0.0", port=19094, debug=False)
