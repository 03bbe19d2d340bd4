from app.usampac import create_app

app = create_app()
