"""
Exceções da camada de configuração.

Todas herdam de `ConfigError` e representam violações estruturais da
configuração (arquivo ausente, formato não suportado, raiz inválida,
conflito de tipos no merge). Nenhuma representa erro de domínio.
"""


class ConfigError(Exception):
    """Base para erros de configuração."""


class DefaultsNotFoundError(ConfigError):
    """
    Arquivo de defaults não encontrado.

    O arquivo de defaults é obrigatório: sem ele não existe configuração
    efetiva válida. Quando nenhum caminho é informado, os defaults
    empacotados em `metals_dataflow/resources` são usados.
    """


class UnsupportedConfigFormatError(ConfigError):
    """Formato de arquivo não suportado (v1: YAML ou JSON)."""


class InvalidConfigRootTypeError(ConfigError):
    """A raiz do arquivo de configuração não é um mapa chave-valor."""


class ConfigTypeConflictError(ConfigError):
    """
    Conflito de tipos durante o deep-merge.

    Exemplo:
        - base:     {"engine": {"fail_fast": false}}
        - override: {"engine": "strict"}

    Nenhum merge parcial é produzido.
    """
