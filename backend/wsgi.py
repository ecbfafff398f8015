try:
    from backend.crocodile.server import create_app
except ImportError:  # pragma: no cover
    from crocodile.server import create_app

app, socketio = create_app()
