# backend/wsgi.py
from jimpitan import create_app

app = create_app()
