# backend/wsgi.py
from refurbshop import create_app

app = create_app()
