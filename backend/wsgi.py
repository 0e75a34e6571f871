# Overview: WSGI entry point; also the FLASK_APP target for the CLI commands.

from erpcore import create_app

app = create_app()
