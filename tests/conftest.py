import os

# main 모듈의 기본 앱이 작업 디렉터리에 sqlite 파일을 만들지 않도록 메모리 DB 사용
os.environ.setdefault("CACHE_DB_URL", "sqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")
