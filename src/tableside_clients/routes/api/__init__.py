"""
Clients API - Modular Blueprint Structure

All endpoints are registered under the main api_bp blueprint.
"""

from flask import Blueprint

# Create main API blueprint
api_bp = Blueprint("client_api", __name__)

from tableside_clients.routes.api.table_orders import table_orders_bp

api_bp.register_blueprint(table_orders_bp)


@api_bp.get("/health")
def health_check():
    """Simple health check endpoint"""
    return {"status": "ok", "service": "clients-api"}, 200


__all__ = ["api_bp"]
