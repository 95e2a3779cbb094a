# 엔드포인트별 페이지네이션 제한
class PaginationLimits:
    COIN_HISTORY = {"min": 1, "max": 100, "default": 20}
    ADMIN_TRANSACTIONS = {"min": 1, "max": 100, "default": 10}
    REDEMPTIONS = {"min": 1, "max": 100, "default": 20}
    AUDIT_LOGS = {"min": 1, "max": 100, "default": 20}
