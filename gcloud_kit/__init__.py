"""
gcloud_kit
----------

gcloud CLI 를 로컬 또는 일회성 Docker 컨테이너로 실행하는 얇은 자동화 도구.
VM 네트워크 태그 추가, 디스크 생성/연결, 없을 때만 리소스 생성,
인증된 gcloud passthrough 를 몇 번 실행해도 같은 결과가 나오도록 처리한다.
"""

__version__ = "0.1.0"

__all__ = [
    "config",
    "session",
]
