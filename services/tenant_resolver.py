from typing import Optional

MAIN_TENANT = "main"
LOCAL_MARKER = "localhost"
HOSTING_DOMAINS = ("onrender.com", "vercel.app", "netlify.app")


def is_resolved(tenant_key: Optional[str]) -> bool:
    """テナントが確定しているか（None・空文字・"main" は未確定）"""
    return bool(tenant_key) and tenant_key != MAIN_TENANT


class TenantResolver:
    """ホスト名からテナント（サブドメイン）を導出する

    例:
      acme.localhost          -> "acme"
      acme.yourapp.com        -> "acme"
      yourapp.com             -> "main"
      project.onrender.com    -> "main"   ホスティング事業者のドメインはテナントではない
      acme.project.onrender.com -> "acme"
    """

    def __init__(
        self,
        local_marker: str = LOCAL_MARKER,
        hosting_domains: Optional[list[str]] = None,
    ):
        self._local_marker = local_marker
        if hosting_domains is None:
            hosting_domains = list(HOSTING_DOMAINS)
        self._hosting_domains = [d.lower().strip(".") for d in hosting_domains if d]

    @staticmethod
    def _normalize(hostname: Optional[str]) -> str:
        host = (hostname or "").strip().lower()
        # ポート番号と末尾のドットを除去
        host = host.split(":", 1)[0]
        return host.rstrip(".")

    def _hosting_suffix(self, host: str) -> Optional[str]:
        for domain in self._hosting_domains:
            if host == domain or host.endswith("." + domain):
                return domain
        return None

    def resolve(self, hostname: Optional[str]) -> str:
        host = self._normalize(hostname)
        if not host:
            return MAIN_TENANT

        parts = host.split(".")

        # ローカル開発環境（acme.localhost）
        if self._local_marker in host and len(parts) > 1:
            return parts[0] or MAIN_TENANT

        # ホスティング事業者ドメイン: サフィックス + プロジェクト名より前にラベルが必要
        suffix = self._hosting_suffix(host)
        if suffix is not None:
            reserved = len(suffix.split(".")) + 1
            if len(parts) > reserved:
                return parts[0] or MAIN_TENANT
            return MAIN_TENANT

        # 本番環境（acme.yourapp.com）
        if len(parts) > 2:
            return parts[0] or MAIN_TENANT

        return MAIN_TENANT
