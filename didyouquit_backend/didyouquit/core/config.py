# didyouquit/core/config.py

import os # 환경 변수를 읽기 위해 사용합니다.


def _int_env(key: str, default: int) -> int:
    """정수형 환경 변수를 읽습니다. 값이 없거나 비어 있으면 기본값을 사용합니다."""
    value = os.getenv(key)
    if value is None or value.strip() == '':
        return default
    return int(value)


class Config:
    """모든 환경 설정의 기반이 되는 공통 설정 클래스입니다."""
    # JWT 토큰 서명 키. 탈퇴/삭제 API의 사용자 식별에 사용됩니다.
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')

    # Firestore 배치 한 번에 담을 수 있는 최대 쓰기 연산 수 (Firestore 제한: 500)
    MAX_BATCH_OPS = min(_int_env('MAX_BATCH_OPS', 500), 500)
    # 댓글 트리 탐색 시 허용하는 최대 노드 수. 초과하면 삭제하지 않고 실패합니다.
    COMMENT_TREE_MAX_NODES = _int_env('COMMENT_TREE_MAX_NODES', 5000)
    # 연쇄 삭제 중 병렬 조회에 사용할 스레드 수
    CASCADE_MAX_WORKERS = _int_env('CASCADE_MAX_WORKERS', 8)


class DevelopmentConfig(Config):
    """개발 환경을 위한 설정 클래스입니다."""
    DEBUG = True
    FIREBASE_CREDENTIALS_PATH = os.getenv('DEV_FIREBASE_CREDENTIALS_PATH')


class TestingConfig(Config):
    """테스트 환경을 위한 설정 클래스입니다."""
    TESTING = True
    DEBUG = False
    FIREBASE_CREDENTIALS_PATH = os.getenv('TEST_FIREBASE_CREDENTIALS_PATH')
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'testing-secret-key-with-at-least-32-bytes')


class ProductionConfig(Config):
    """운영 환경을 위한 설정 클래스입니다."""
    DEBUG = False
    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')


# FLASK_ENV 값에 따라 create_app에서 적절한 설정 클래스를 선택합니다.
config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig
)
