#!/usr/bin/env python3
"""Playmanity SDK 메인 엔트리포인트

python -m playmanity 명령으로 실행 가능한 CLI 인터페이스를 제공합니다.
"""

import sys
import json
import asyncio
import argparse
import subprocess
from pathlib import Path


def run_tests():
    """테스트 실행"""
    print("🧪 Playmanity SDK 테스트 실행")

    current_dir = Path(__file__).parent
    project_root = current_dir.parent

    try:
        result = subprocess.run([
            sys.executable, "-m", "pytest",
            "playmanity/tests/",
            "-v", "--tb=short"
        ], cwd=project_root)
        return result.returncode
    except Exception as e:
        print(f"pytest 실행 실패: {e}")
        return 1


def _load_settings(device_auth=False):
    from playmanity.config import configure_logging, get_settings

    settings = get_settings()
    configure_logging(settings.log_level, settings.api_log_file)
    if device_auth:
        # 저장된 토큰을 무시하고 디바이스 인증을 강제
        settings = settings.copy(update={"auth_token": ""})
    return settings


def run_session(token=None, device_auth=False):
    """세션을 시작하고 Ctrl+C까지 유지"""
    from playmanity.services import run_host

    print("🚀 Playmanity 세션 시작 (Ctrl+C로 종료)")
    return asyncio.run(run_host(_load_settings(device_auth), token=token))


async def _fetch_ad(token):
    from playmanity.services import create_host

    host = create_host(_load_settings())
    manager = await host.startup()
    try:
        if not await host.run_session(token=token):
            print("세션을 시작하지 못했습니다")
            return 1
        ad = await manager.get_advertisement()
        if ad is None:
            print("광고를 가져오지 못했습니다")
            return 1
        print(json.dumps(ad.to_dict(), ensure_ascii=False, indent=2))
        return 0
    finally:
        await host.shutdown()


def show_status():
    """현재 설정 표시"""
    from playmanity.config import get_settings

    settings = get_settings()
    print(json.dumps({
        "server_url": settings.server_url,
        "game_uuid": settings.game_uuid,
        "device_id": settings.device_id or None,
        "has_auth_token": bool(settings.auth_token),
        "sdk_config_path": settings.sdk_config_path,
        "timings": settings.get_session_timings()
    }, ensure_ascii=False, indent=2))
    return 0


def show_help():
    """도움말 표시"""
    help_text = """
🎮 Playmanity SDK CLI

사용법:
  python -m playmanity [command] [--token TOKEN]

명령어:
  session  세션 시작 후 Ctrl+C까지 하트비트 유지
  auth     디바이스 인증 후 세션 시작 (토큰 없이)
  ad       세션을 시작하고 광고 1건 조회
  status   현재 설정 표시
  test     모든 테스트 실행
  help     이 도움말 표시

예시:
  python -m playmanity session --token abc123
  PLAYMANITY_DEVICE_ID=my-device python -m playmanity auth
"""
    print(help_text)


def main():
    """메인 함수"""
    parser = argparse.ArgumentParser(
        description="Playmanity SDK CLI",
        add_help=False  # 커스텀 help 사용
    )
    parser.add_argument(
        "command",
        nargs="?",
        choices=["session", "auth", "ad", "status", "test", "help"],
        default="help",
        help="실행할 명령어"
    )
    parser.add_argument("--token", default=None, help="인증 토큰 (없으면 PLAYMANITY_AUTH_TOKEN 사용)")

    args = parser.parse_args()

    if args.command == "test":
        return run_tests()
    elif args.command == "session":
        return run_session(args.token)
    elif args.command == "auth":
        return run_session(None, device_auth=True)
    elif args.command == "ad":
        return asyncio.run(_fetch_ad(args.token))
    elif args.command == "status":
        return show_status()
    elif args.command == "help" or args.command is None:
        show_help()
        return 0
    else:
        print(f"알 수 없는 명령어: {args.command}")
        show_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
