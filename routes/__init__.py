from .counts import counts_bp
from .warehouse import warehouse_bp

def register_blueprints(app):
    app.register_blueprint(counts_bp)
    app.register_blueprint(warehouse_bp)
