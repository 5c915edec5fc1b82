# backend/wsgi.py
from stockhub import create_app

app = create_app()
