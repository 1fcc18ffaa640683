from app.recordstore import create_app

app = create_app()
