import os

from satfusion import create_app
from satfusion.sockets import socketio

# usa tu factory con config por defecto "development"
app = create_app(os.getenv("FLASK_ENV", "development"))

if __name__ == "__main__":
    # importante para Docker
    socketio.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "5000")), debug=app.config.get("DEBUG", False),
                 allow_unsafe_werkzeug=True)
