"""CRM API Discovery Package.

Empirically characterizes a CRM's dual API surface:
- GraphQL vs REST latency per operation
- Schema shape (custom fields, relationships, data types)
- Credential scopes reachable in practice
- Rate limit ceiling and cache headers
"""

from .auth_prober import AuthProber, AuthProfile
from .cache_analyzer import CacheAnalyzer, CacheProfile
from .catalog import DEFAULT_CATALOG, OperationCatalog, OperationKind, OperationSpec
from .engine import APIDiscovery
from .rate_limit_prober import RateLimitProber, RateLimitProfile
from .recommendations import Recommendations, synthesize_recommendations
from .report_generator import DiscoveryReport, ReportGenerator
from .sampler import ApiProtocol, DualProtocolSampler, PerformanceMetrics
from .schema_analyzer import SchemaAnalysis, SchemaAnalyzer
from .transport import GraphQLTransport, RestTransport

__all__ = [
    "DEFAULT_CATALOG",
    "APIDiscovery",
    "ApiProtocol",
    "AuthProber",
    "AuthProfile",
    "CacheAnalyzer",
    "CacheProfile",
    "DiscoveryReport",
    "DualProtocolSampler",
    "GraphQLTransport",
    "OperationCatalog",
    "OperationKind",
    "OperationSpec",
    "PerformanceMetrics",
    "RateLimitProber",
    "RateLimitProfile",
    "Recommendations",
    "ReportGenerator",
    "RestTransport",
    "SchemaAnalysis",
    "SchemaAnalyzer",
    "synthesize_recommendations",
]
