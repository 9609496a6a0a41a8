# run.py
from dotenv import load_dotenv
import os

basedir = os.path.abspath(os.path.dirname(__file__))
# 프로젝트 루트의 '.env' 파일을 먼저 로드한 뒤 앱을 생성합니다.
load_dotenv(dotenv_path=os.path.join(basedir, '.env'))

from sardia_api import create_app

app = create_app()

if __name__ == '__main__':
    host = os.getenv('FLASK_RUN_HOST', '127.0.0.1')
    port = int(os.getenv('FLASK_RUN_PORT', 5001))
    debug = app.config.get('DEBUG', False)
    app.run(host=host, port=port, debug=debug)
