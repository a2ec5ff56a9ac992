from dotenv import load_dotenv

load_dotenv()

from aggcache.app_factory import create_app

app = create_app()
