# wsgi.py
from retailhub import create_app

# seller api
application = create_app()

if __name__ == "__main__":
    application.run(host="0.0.0.0", port=5000)
