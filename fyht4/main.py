from . import create_app

app = create_app()

if __name__ == "__main__":
    # Modo desarrollo (en producción arrancamos con gunicorn fyht4.main:app)
    app.run(host="0.0.0.0", port=8080)
