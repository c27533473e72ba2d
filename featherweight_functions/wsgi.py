# featherweight_functions/wsgi.py
from . import create_app

app = create_app()
