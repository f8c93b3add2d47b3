"""
Ledger layer for the CLAMM engine

풀 내부의 가변 상태:
- tick: 틱별 유동성 / fee growth outside
- tick_bitmap: 초기화된 틱 인덱스 (256비트 워드)
- position: (owner, tick_lower, tick_upper) 포지션과 미수령 수수료
- journal: 연산 실패 시 건드린 키만 되돌리는 undo 기록
"""

from .tick import TickRegistry, tick_spacing_to_max_liquidity_per_tick
from .tick_bitmap import TickBitmap
from .position import PositionLedger, check_ticks
