"""
Network Anomaly Detection

Detects risky connection characteristics:
1. High IP risk score
2. VPN, proxy or Tor usage
3. Frequent network changes
4. Connections from outside the home country
"""

from ..schemas import RiskSignal
from .base import BaseDimensionScorer, DimensionResult, ScoringContext, exceeds

HOME_COUNTRY = "PH"


class NetworkScorer(BaseDimensionScorer):
    """Scores network anomalies."""

    dimension = "network"

    def __init__(self, home_country: str = HOME_COUNTRY):
        """
        Initialize scorer.

        Args:
            home_country: ISO country code where the platform operates
        """
        self.home_country = home_country.upper()

    def score(self, context: ScoringContext) -> DimensionResult:
        result = DimensionResult()
        network = context.features.network

        ip_risk = network.ip_risk_score
        if exceeds(ip_risk, 0.8) and ip_risk <= 1:
            result.add(0.6, RiskSignal.NETWORK_HIGH_RISK_IP, "High-risk IP address")
        elif exceeds(ip_risk, 0.5) and ip_risk <= 1:
            result.add(0.3, RiskSignal.NETWORK_HIGH_RISK_IP, "Elevated IP risk")

        if network.is_vpn or network.is_proxy:
            # VPN/proxy is suspicious but not as severe as Tor
            result.add(0.4, RiskSignal.NETWORK_VPN_PROXY, "Connection through VPN or proxy")

        if network.is_tor:
            result.add(0.8, RiskSignal.NETWORK_TOR, "Connection from Tor exit node")

        if network.network_changes > 5:
            result.add(0.3, RiskSignal.NETWORK_FREQUENT_CHANGES, f"{network.network_changes} network changes")
        elif network.network_changes > 2:
            result.add(0.1, RiskSignal.NETWORK_FREQUENT_CHANGES, f"{network.network_changes} network changes")

        country = network.country_code.strip().upper()
        if country != self.home_country:
            result.add(
                0.7,
                RiskSignal.NETWORK_FOREIGN_COUNTRY,
                f"Connection from {country or 'unknown country'}",
            )

        return result.clamped()
