from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    Describes one environment setting a client needs before it can boot.

    Attributes:
        env_key (str): Key suffix, expanded by the client to "{TYPE}_{ENGINE}_{KEY}" (e.g. "ACCOUNT_ID" → "INDEX_CLOUDFLARE_ACCOUNT_ID").
        val_type (str): One of "string", "number", "bool" or "list".
        default (str | int | bool | list | None): Value used when the variable is unset. None marks the setting as required.
    """

    env_key: str
    val_type: str = "string"
    default: str | int | bool | list | None = None
