"""tagflags の例外型定義"""

from __future__ import annotations


class FlagError(Exception):
    """tagflags のエラー基底クラス。"""

    def __init__(
        self,
        code: str,
        message: str,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return f"{self.code}: {super().__str__()}"


class FlagErrorCodes:
    """FlagError のエラーコード定数。"""

    VALIDATION: str = "VALIDATION_ERROR"
    DUPLICATE_CHAIN: str = "DUPLICATE_CHAIN"
    FLAG_NOT_FOUND: str = "FLAG_NOT_FOUND"
    FLAG_ALREADY_EXISTS: str = "FLAG_ALREADY_EXISTS"
    MISSING_DEPENDENCY: str = "MISSING_DEPENDENCY"
    INVALID_RULE: str = "INVALID_RULE"
    STORE_ERROR: str = "STORE_ERROR"
    CONFIG_ERROR: str = "CONFIG_ERROR"


class ValidationError(FlagError):
    """入力が不正な場合のエラー。"""

    def __init__(self, message: str) -> None:
        super().__init__(FlagErrorCodes.VALIDATION, message)


class DuplicateChainError(FlagError):
    """同一のルールチェーンが既にブロックに存在する場合のエラー。"""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(
            FlagErrorCodes.DUPLICATE_CHAIN,
            f"duplicate rule chain in block: {key}",
        )


class NotFoundError(FlagError):
    """フラグレコードが見つからない場合のエラー。"""

    def __init__(self, flag_id: str, cause: Exception | None = None) -> None:
        self.flag_id = flag_id
        super().__init__(FlagErrorCodes.FLAG_NOT_FOUND, f"flag not found: {flag_id}", cause)


class AlreadyExistsError(FlagError):
    """同じ ID のフラグレコードが既に存在する場合のエラー。"""

    def __init__(self, flag_id: str, cause: Exception | None = None) -> None:
        self.flag_id = flag_id
        super().__init__(
            FlagErrorCodes.FLAG_ALREADY_EXISTS,
            f"flag already exists: {flag_id}",
            cause,
        )


class DependencyError(FlagError):
    """必須の依存が不足している場合のエラー。不足分をすべて保持する。"""

    def __init__(self, component: str, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(
            FlagErrorCodes.MISSING_DEPENDENCY,
            f"unable to initialize {component} due to ({len(self.missing)}) "
            f"missing dependencies: {','.join(self.missing)}",
        )


class StoreError(FlagError):
    """ドキュメントストアの I/O エラー。"""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(FlagErrorCodes.STORE_ERROR, message, cause)
