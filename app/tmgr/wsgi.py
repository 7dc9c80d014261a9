from app.tmgr import create_app

app = create_app()
