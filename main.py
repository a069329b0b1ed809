# main.py: shim/ponte para o app de produção
# Mantém o entrypoint esperado (gunicorn main:app), reutilizando o app
# montado em app.py (blueprints, CORS, handlers de erro).

from app import app  # importa o Flask app já configurado no app.py

if __name__ == "__main__":
    import os
    port = int(os.environ.get("PORT", 10000))
    app.run(host="0.0.0.0", port=port, debug=os.environ.get("FLASK_DEBUG", "0") == "1")
