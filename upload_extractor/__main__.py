from upload_extractor.cli import app

app()
