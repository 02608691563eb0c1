# backend/wsgi.py
# FLASK_APP entry point: python -m flask --app wsgi.py run
from pustaka import create_app

app = create_app()
