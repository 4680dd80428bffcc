# backend/wsgi.py
from clubpos import create_app

app = create_app()
