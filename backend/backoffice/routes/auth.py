# Overview: Flask API routes for registration, login and operator approval.

"""
Authentication routes.

- POST /register   self-service signup; provisions the bakery immediately, or
                   parks it for operator approval when
                   REGISTRATION_REQUIRES_APPROVAL is set
- POST /login      username (or email) + password -> bearer token
- GET|POST /approve/<token>   operator link from the approval email
- GET /me          the caller's token claims
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..roles import RoleName
from ..services import auth_service, provisioning_service
from ..services.namespace_service import NamespaceName
from ..services.provisioning_service import OwnerCandidate
from ..services.token_service import Identity, issue_token

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """
    Register a bakery and its Store Owner.

    Body: {"businessName", "username", "email", "password", "firstName"?, "lastName"?}

    Returns 201 with a token when provisioned directly, 202 when the
    registration waits for operator approval, 409 on a taken bakery name,
    username or email.
    """
    payload = request.get_json(silent=True) or {}
    business_name = provisioning_service.validate_business_name(payload.get("businessName"))
    owner = OwnerCandidate.from_registration(payload)

    if current_app.config.get("REGISTRATION_REQUIRES_APPROVAL"):
        user, _ = provisioning_service.register_pending(business_name, owner)
        current_app.logger.info("Registration for %r parked for approval (user_id=%s)", business_name, user.id)
        return jsonify({
            "message": "Registration received; your account will be activated once approved",
            "user": user.to_dict(),
        }), 202

    result = provisioning_service.provision(business_name, owner)
    identity = Identity(
        user_id=result.user_id,
        username=result.user["username"],
        roles=frozenset({RoleName.OWNER}),
        tenant_id=result.tenant_id,
        namespace=NamespaceName(result.namespace),
    )
    return jsonify({
        "message": "Registration successful",
        "token": issue_token(identity),
        "user": result.user,
        "tenant": {"id": result.tenant_id, "name": result.tenant["name"]},
    }), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and issue a bearer token.

    401 on bad credentials, 403 while the account waits on approval.
    """
    data = request.get_json(silent=True) or {}
    username = data.get("username") or data.get("email")
    password = data.get("password")

    if not all([username, password]):
        return jsonify({"error": "username/email and password required"}), 400

    token, user = auth_service.login(username, password)
    return jsonify({
        "message": "Login successful",
        "token": token,
        "user": user.to_dict(),
    }), 200


@auth_bp.route("/approve/<token>", methods=["GET", "POST"])
def approve_route(token: str):
    result = provisioning_service.approve(token)
    return jsonify({
        "message": "Bakery approved and provisioned",
        "tenant": result.tenant,
        "user": result.user,
    }), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify(g.identity.to_dict()), 200
