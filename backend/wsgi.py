# backend/wsgi.py
from shiftclock import create_app

app = create_app()
