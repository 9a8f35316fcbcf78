"""
Constantes do query-cache.

Valores padrão e templates de mensagens de erro usados pelos componentes
para eliminar números mágicos espalhados pelo código.
"""

# Tempos em segundos
DEFAULT_CACHE_TIME = 300.0  # 5 minutos
DEFAULT_DEDUPING_INTERVAL = 2.0
DEFAULT_RETRY_COUNT = 2
DEFAULT_RETRY_DELAY = 2.0

# Cliente HTTP dos producers
DEFAULT_HTTP_TIMEOUT_SECONDS = 10.0

# Variáveis de ambiente
ENV_CACHE_TIME = "QUERY_CACHE_CACHE_TIME"
ENV_DEDUPING_INTERVAL = "QUERY_CACHE_DEDUPING_INTERVAL"
ENV_RETRY_COUNT = "QUERY_CACHE_RETRY_COUNT"
ENV_RETRY_DELAY = "QUERY_CACHE_RETRY_DELAY"

# Templates de mensagens de erro
ERROR_KEY_EMPTY = "key cannot be empty or whitespace-only"
ERROR_KEY_TYPE_INVALID = "key must be str, got {type_name}"
ERROR_DURATION_TYPE_INVALID = "{name} must be int or float, got {type_name}"
ERROR_DURATION_NOT_POSITIVE = "{name} must be > 0, got {value}"
ERROR_DURATION_NEGATIVE = "{name} must be >= 0, got {value}"
ERROR_RETRY_COUNT_TYPE_INVALID = "retry_count must be int, got {type_name}"
ERROR_RETRY_COUNT_NEGATIVE = "retry_count must be >= 0, got {value}"
ERROR_ON_ERROR_NOT_CALLABLE = "on_error must be callable or None, got {type_name}"
ERROR_ENV_INVALID = "Invalid value for environment variable {name}: {value!r}"
