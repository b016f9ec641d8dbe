# didyouquit/__init__.py

# =====================================================================================
# 1. 환경 변수 로드 (가장 먼저 실행)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. 모듈 임포트 (Module Imports)
# =====================================================================================
import os
import logging
from flask import Flask, jsonify
from marshmallow import ValidationError
from flask_jwt_extended import JWTManager
import firebase_admin
from firebase_admin import credentials, firestore

# - 설정 및 예외
from didyouquit.core.config import config_by_name
from didyouquit.core.exceptions import CascadeError

# - API 블루프린트
from didyouquit.api.resolutions.routes import resolutions_bp
from didyouquit.api.forums.routes import forums_bp
from didyouquit.api.users.routes import users_bp

# - 서비스 모듈
from didyouquit.services.batch_executor import BatchExecutor
from didyouquit.services.comment_tree import CommentTreeResolver
from didyouquit.services.cascade_service import CascadeService
from didyouquit.services.user_cascade_service import UserCascadeService
from didyouquit.api.resolutions.services import ResolutionService
from didyouquit.api.forums.services import ForumService
from didyouquit.api.users.services import AccountService


def create_app(config_name=None, db=None):
    """
    Flask 애플리케이션 팩토리 함수.
    :param config_name: 'development' / 'testing' / 'production' (기본값: FLASK_ENV)
    :param db: Firestore 클라이언트. 생략하면 Firebase Admin SDK로 초기화한 클라이언트를 사용합니다.
    """
    # =====================================================================================
    # 3. Flask 앱 생성 및 기본 설정
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.json.ensure_ascii = False

    # =====================================================================================
    # 4. 확장 기능 및 외부 서비스 초기화
    # =====================================================================================
    JWTManager(app)

    if db is None:
        if not firebase_admin._apps:
            cred_path = app.config['FIREBASE_CREDENTIALS_PATH']
            if not cred_path or not os.path.exists(cred_path):
                raise FileNotFoundError(f"Firebase 인증 파일을 찾을 수 없습니다: {cred_path}")
            firebase_admin.initialize_app(credentials.Certificate(cred_path))
        db = firestore.client()

    # =====================================================================================
    # 5. 서비스 인스턴스 생성 및 'app.services'에 저장 (의존성 주입)
    # =====================================================================================
    app.services = {}

    # 5-1. 연쇄 삭제 핵심 서비스
    executor = BatchExecutor(db=db, max_batch_ops=app.config['MAX_BATCH_OPS'])
    tree_resolver = CommentTreeResolver(db=db, max_nodes=app.config['COMMENT_TREE_MAX_NODES'])
    cascade_service = CascadeService(
        db=db,
        executor=executor,
        tree_resolver=tree_resolver,
        max_workers=app.config['CASCADE_MAX_WORKERS']
    )
    user_cascade_service = UserCascadeService(
        db=db,
        cascade_service=cascade_service,
        executor=executor,
        max_workers=app.config['CASCADE_MAX_WORKERS']
    )
    app.services['cascade'] = cascade_service
    app.services['user_cascade'] = user_cascade_service

    # 5-2. 요청 단위 도메인 서비스 (권한 확인 후 연쇄 삭제 위임)
    app.services['resolutions'] = ResolutionService(cascade_service=cascade_service, db=db)
    app.services['forums'] = ForumService(cascade_service=cascade_service, db=db)
    app.services['accounts'] = AccountService(user_cascade_service=user_cascade_service, db=db)
    logging.info("Cascade services initialized successfully")

    # =====================================================================================
    # 6. 블루프린트 등록
    # =====================================================================================
    app.register_blueprint(resolutions_bp, url_prefix='/api/resolutions')
    app.register_blueprint(forums_bp, url_prefix='/api')
    app.register_blueprint(users_bp, url_prefix='/api/users')

    # =====================================================================================
    # 7. 전역 에러 핸들러 설정
    # =====================================================================================
    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        response = {"error_code": "VALIDATION_ERROR", "details": err.messages}
        return jsonify(response), 400

    @app.errorhandler(CascadeError)
    def handle_cascade_error(err):
        logging.error(f"연쇄 삭제 실패 (stage: {err.stage}): {err}", exc_info=True)
        response = {"error_code": "CASCADE_FAILED", "message": "삭제 처리 중 오류가 발생했습니다.", "stage": err.stage}
        return jsonify(response), 500

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        # 다른 핸들러에서 처리되지 않은 모든 예외를 여기서 처리
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        response = {"error_code": "INTERNAL_SERVER_ERROR", "message": "서버 내부에서 예상치 못한 오류가 발생했습니다."}
        return jsonify(response), 500

    # =====================================================================================
    # 8. 로깅 및 앱 반환
    # =====================================================================================
    if not app.debug:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    logging.info(f"Flask app created for '{config_name}' environment.")

    return app
