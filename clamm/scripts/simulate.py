#!/usr/bin/env python3
"""
Simulate - YAML 시나리오를 풀에 재생하고 결과 테이블 출력

Usage:
    # 시나리오 실행
    clamm-simulate scenarios/basic.yaml

    # 결과를 CSV로 저장
    clamm-simulate scenarios/basic.yaml --csv out.csv

    # 스텝별 디버그 로그
    clamm-simulate scenarios/basic.yaml --log-level DEBUG
"""

import argparse
import sys
from typing import List, Optional

import pandas as pd
import yaml
from pydantic import ValidationError

from ..config import settings, setup_logging
from ..exceptions import ClammError
from ..scenario import load_scenario, run_scenario


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="YAML 시나리오를 풀에 재생",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
  clamm-simulate basic.yaml
  clamm-simulate basic.yaml --csv out.csv

Relative scenario paths are also looked up in {settings.SCENARIO_DIR}/ (CLAMM_SCENARIO_DIR).
        """
    )
    parser.add_argument("scenario", type=str, help="시나리오 YAML 경로")
    parser.add_argument("--csv", type=str, help="결과 CSV 저장 경로")
    parser.add_argument("--log-level", type=str, default=None, help=f"로그 레벨 (기본: {settings.LOG_LEVEL})")

    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    try:
        scenario = load_scenario(args.scenario)
    except (OSError, yaml.YAMLError, ValidationError) as e:
        print(f"❌ 시나리오 로드 실패: {e}", file=sys.stderr)
        return 2

    try:
        df = run_scenario(scenario)
    except (ClammError, ValueError) as e:
        print(f"❌ 시나리오 실패: {type(e).__name__}: {e}", file=sys.stderr)
        return 1

    with pd.option_context("display.max_columns", None, "display.width", 200):
        print(df.to_string(index=False))

    if args.csv:
        df.to_csv(args.csv, index=False)
        print(f"💾 저장: {args.csv}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
