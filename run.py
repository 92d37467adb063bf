"""
Entry point for Flask.

Usage (from project root):

    flask --app run.py --debug run

Bootstrap (no migrations/ directory ships with the repo; generate it once):

    flask --app run.py db init
    flask --app run.py db migrate -m "initial schema"
    flask --app run.py db upgrade            # or db.create_all() in a shell for a throwaway database
    flask --app run.py create-organization "Acme Wholesale"
    flask --app run.py create-super-admin admin@example.com 'a-long-password'

"""

from quotedesk import create_app

# WSGI application object. `flask run` and WSGI servers look for this `app` variable.
app = create_app()

if __name__ == "__main__":
    # dev only; use `flask run` or a WSGI server instead
    app.run(debug=True)
