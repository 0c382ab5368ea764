# wsgi.py (at repo root), e.g. ``gunicorn wsgi:app``
from training_portal import create_app

app = create_app()
