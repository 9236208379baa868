"""
Employees API - Modular Blueprint Structure

Each module handles a specific resource or domain.
"""

from flask import Blueprint

# Create main API blueprint
api_bp = Blueprint("api", __name__)

# Import and register sub-blueprints
from .table_orders import table_orders_bp
from .tables import tables_bp

api_bp.register_blueprint(tables_bp)
api_bp.register_blueprint(table_orders_bp)


# Health check endpoint
@api_bp.get("/health")
def health_check():
    """Simple health check endpoint"""
    return {"status": "ok", "service": "employees-api"}, 200
