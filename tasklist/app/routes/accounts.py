"""
routes/accounts.py — Account route handlers.

Layer rules:
  - Parse request body
  - Validate with the appropriate schema (raises ValidationError on bad input)
  - Call exactly ONE service function
  - Commit the DB session
  - Return the standard response envelope: {"data": {...}, "warnings": []}

Access is decided before these handlers run: by the route policy (public vs
principal required) and, for PATCH/DELETE, by the account_owner guard —
an account may only modify or delete itself.

Endpoints (url_prefix=/api/v1/accounts):
  POST   /register       → 201  (public)
  POST   /login          → 200  (public)
  GET    /me             → 200
  GET    /               → 200
  GET    /:id            → 200
  PATCH  /:id            → 200  (owner only)
  DELETE /:id            → 200  (owner only)
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from tasklist.app.context import RequestContext, with_context
from tasklist.app.errors import ErrorCode
from tasklist.app.extensions import db
from tasklist.app.middleware.ownership import OwnershipGuard
from tasklist.app.models.account import Account
from tasklist.app.schemas.account_schema import LoginSchema, RegisterSchema, UpdateAccountSchema
from tasklist.app.services import account_service
from tasklist.app.services.token_service import get_token_service

accounts_bp = Blueprint("accounts", __name__)

account_owner = OwnershipGuard(
    find_active=lambda account_id: account_service.find_active_account_by_id(account_id, db.session),
    resource_id_arg="account_id",
    not_found_code=ErrorCode.ACCOUNT_NOT_FOUND,
    label="Account",
    inject_as="account",
)


@accounts_bp.route("/register", methods=["POST"])
def register():
    """POST /accounts/register — Create an account. (Public.)"""
    data = RegisterSchema().load(request.get_json(force=True, silent=True) or {})
    result = account_service.register_account(data=data, session=db.session)
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@accounts_bp.route("/login", methods=["POST"])
def login():
    """POST /accounts/login — Exchange credentials for a bearer token. (Public.)"""
    data = LoginSchema().load(request.get_json(force=True, silent=True) or {})
    result = account_service.login(
        username_or_email=data["username_or_email"],
        password=data["password"],
        tokens=get_token_service(),
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@accounts_bp.route("/me", methods=["GET"])
@with_context
def me(ctx: RequestContext):
    """GET /accounts/me — Profile of the authenticated caller."""
    result = account_service.get_account(
        account_id=ctx.principal.account_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@accounts_bp.route("/", methods=["GET"])
def list_accounts():
    """GET /accounts — All active accounts (public profile fields only)."""
    result = account_service.list_accounts(session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@accounts_bp.route("/<int:account_id>", methods=["GET"])
def get_account(account_id: int):
    """GET /accounts/:id — One active account's profile."""
    result = account_service.get_account(account_id=account_id, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@accounts_bp.route("/<int:account_id>", methods=["PATCH"])
@account_owner.protect
def update_account(account_id: int, ctx: RequestContext, account: Account):
    """PATCH /accounts/:id — Partial update of the caller's own account."""
    data = UpdateAccountSchema().load(request.get_json(force=True, silent=True) or {})
    result = account_service.update_account(account=account, data=data, session=db.session)
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@accounts_bp.route("/<int:account_id>", methods=["DELETE"])
@account_owner.protect
def delete_account(account_id: int, ctx: RequestContext, account: Account):
    """DELETE /accounts/:id — Soft-delete the caller's own account."""
    account_service.delete_account(account=account, session=db.session)
    db.session.commit()
    return jsonify({
        "data": {
            "deleted": True,
            "account_id": account_id,
        },
        "warnings": [],
    }), 200
