"""Portuguese (pt-AO) user-facing messages.

Maps backend, network and database error messages to the text shown to
users. Unknown messages are returned unchanged.
"""

from __future__ import annotations

ERROR_TRANSLATIONS: dict[str, str] = {
    # Auth
    "Invalid login credentials": "Email ou senha incorretos",
    "Email not confirmed": "Email não confirmado. Verifique sua caixa de entrada",
    "User already registered": "Este email já está cadastrado",
    "Password should be at least 6 characters": "A senha deve ter pelo menos 6 caracteres",
    "Unable to validate email address: invalid format": "Formato de email inválido",
    "Email rate limit exceeded": "Muitas tentativas. Tente novamente mais tarde",
    "Invalid email or password": "Email ou senha incorretos",
    "Email link is invalid or has expired": "Link de email inválido ou expirado",
    "Token has expired or is invalid": "Sessão expirada. Faça login novamente",
    "User not found": "Usuário não encontrado",
    "New password should be different from the old password": (
        "A nova senha deve ser diferente da anterior"
    ),
    "Password is too weak": "Senha muito fraca. Use letras, números e símbolos",
    "Signup requires a valid password": "É necessária uma senha válida",
    "User already exists": "Usuário já existe",
    "Email address is invalid": "Endereço de email inválido",
    "Only an email address or phone number should be provided": "Forneça apenas email ou telefone",
    # Network
    "Failed to fetch": "Erro de conexão. Verifique sua internet",
    "Network request failed": "Falha na conexão. Tente novamente",
    "timeout": "Tempo esgotado. Tente novamente",
    # Database (PostgreSQL and SQLite wording)
    "duplicate key value": "Este registro já existe",
    "violates foreign key constraint": "Erro de referência no banco de dados",
    "FOREIGN KEY constraint failed": "Erro de referência no banco de dados",
    "violates not-null constraint": "Campo obrigatório não preenchido",
    "NOT NULL constraint failed": "Campo obrigatório não preenchido",
    # Generic
    "An error occurred": "Ocorreu um erro",
    "Something went wrong": "Algo deu errado",
    "Internal server error": "Erro interno do servidor",
    "Service unavailable": "Serviço temporariamente indisponível",
}

SUCCESS_TRANSLATIONS: dict[str, str] = {
    "Check your email for the confirmation link": "Verifique seu email para confirmar sua conta",
    "Password updated successfully": "Senha atualizada com sucesso",
    "Email updated successfully": "Email atualizado com sucesso",
    "User updated successfully": "Usuário atualizado com sucesso",
}

DUPLICATE_PROCESSO_MESSAGE = (
    "Este número de processo já está em uso. Por favor, use um número diferente "
    "ou deixe o campo vazio para gerar automaticamente."
)
DUPLICATE_VALUE_MESSAGE = "Este valor já existe no sistema. Por favor, use um valor único."

_DUPLICATE_MARKERS = ("23505", "duplicate key", "UNIQUE constraint failed")


def translate_error(message: str) -> str:
    """Translate an error message to Portuguese.

    Duplicate-key errors are checked first, then an exact match, then a
    case-insensitive substring match.

    Args:
        message: Original error message

    Returns:
        Translated message, or the original if no translation exists
    """
    if any(marker in message for marker in _DUPLICATE_MARKERS):
        if "numero_processo" in message:
            return DUPLICATE_PROCESSO_MESSAGE
        return DUPLICATE_VALUE_MESSAGE

    if message in ERROR_TRANSLATIONS:
        return ERROR_TRANSLATIONS[message]

    lowered = message.lower()
    for key, value in ERROR_TRANSLATIONS.items():
        if key.lower() in lowered:
            return value

    return message


def translate_success(message: str) -> str:
    """Translate a success message, falling back to the original."""
    return SUCCESS_TRANSLATIONS.get(message, message)
