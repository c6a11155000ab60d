"""
WSGI entry point: gunicorn wsgi:app, or python wsgi.py for local use
"""
import os

from app import create_app

app = create_app()

if __name__ == '__main__':
    app.run(host=os.getenv('HOST', '0.0.0.0'), port=int(os.getenv('PORT', '5000')), debug=False)
