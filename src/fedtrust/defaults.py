WELL_KNOWN_FEDERATION_PATH = "/.well-known/openid-federation"

ENTITY_STATEMENT_CONTENT_TYPE = "application/entity-statement+jwt"
JOSE_CONTENT_TYPE = "application/jose"

# Number of subordinate statements a resolved chain may contain
DEFAULT_MAX_SUPERIORS = 10

DEFAULT_HTTPC_PARAMS = {"timeout": 10}

DEFAULT_ALLOWED_ALGORITHMS = [
    "RS256", "RS384", "RS512",
    "PS256", "PS384", "PS512",
    "ES256", "ES384", "ES512",
    "EdDSA"
]

# Key type (JWK kty) that can carry a signature made with an algorithm family
ALG_PREFIX2KEY_TYPE = {
    "RS": "RSA",
    "PS": "RSA",
    "ES": "EC",
    "Ed": "OKP"
}
