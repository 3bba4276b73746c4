"""Error codes and localized messages for the checkout engine.

Two tables live here:
- ``ERROR_MESSAGES``: the engine's own inline messages (validation,
  transport, misconfiguration), per locale.
- ``GATEWAY_ERROR_MESSAGES``: the Error Translator table mapping gateway
  failure categories to user-facing text, per locale.
"""

from enum import Enum

from .enums import GatewayErrorCategory, LeadField

DEFAULT_LOCALE = "pt"


class CheckoutErrorCode(str, Enum):
    """Inline error codes surfaced by the checkout stages."""

    # Lead validation (ERR_LEAD_001-ERR_LEAD_003)
    INVALID_NAME = "ERR_LEAD_001"
    INVALID_EMAIL = "ERR_LEAD_002"
    INVALID_PHONE = "ERR_LEAD_003"

    # Transport / endpoint errors (ERR_NET_001-ERR_NET_005)
    LEAD_CAPTURE_FAILED = "ERR_NET_001"
    INTENT_CREATION_FAILED = "ERR_NET_002"
    DUPLICATE_REQUEST = "ERR_NET_003"
    RATE_LIMITED = "ERR_NET_004"
    REQUEST_TIMEOUT = "ERR_NET_005"

    # Payment errors (ERR_PAY_001-ERR_PAY_003)
    GATEWAY_MISCONFIGURED = "ERR_PAY_001"
    PAYMENT_FAILED = "ERR_PAY_002"
    SURFACE_UNAVAILABLE = "ERR_PAY_003"


ERROR_MESSAGES: dict[str, dict[CheckoutErrorCode, str]] = {
    "pt": {
        CheckoutErrorCode.INVALID_NAME: "Por favor, digite seu nome completo.",
        CheckoutErrorCode.INVALID_EMAIL: "Por favor, digite um email válido.",
        CheckoutErrorCode.INVALID_PHONE: "Por favor, digite um número de telefone válido.",
        CheckoutErrorCode.LEAD_CAPTURE_FAILED: "Erro ao salvar dados. Tente novamente.",
        CheckoutErrorCode.INTENT_CREATION_FAILED: "Erro ao processar pagamento. Tente novamente.",
        CheckoutErrorCode.DUPLICATE_REQUEST: "Solicitação duplicada detectada. Tente novamente.",
        CheckoutErrorCode.RATE_LIMITED: "Muitas tentativas. Aguarde alguns minutos e tente novamente.",
        CheckoutErrorCode.REQUEST_TIMEOUT: "O pedido demorou demasiado. Tente novamente.",
        CheckoutErrorCode.GATEWAY_MISCONFIGURED: "Erro no sistema de pagamento. Recarregue a página.",
        CheckoutErrorCode.PAYMENT_FAILED: "Erro no pagamento. Tente novamente.",
        CheckoutErrorCode.SURFACE_UNAVAILABLE: "Erro ao carregar sistema de pagamento. Tente novamente.",
    },
    "en": {
        CheckoutErrorCode.INVALID_NAME: "Please enter your full name.",
        CheckoutErrorCode.INVALID_EMAIL: "Please enter a valid email address.",
        CheckoutErrorCode.INVALID_PHONE: "Please enter a valid phone number.",
        CheckoutErrorCode.LEAD_CAPTURE_FAILED: "We could not save your details. Please try again.",
        CheckoutErrorCode.INTENT_CREATION_FAILED: "We could not start the payment. Please try again.",
        CheckoutErrorCode.DUPLICATE_REQUEST: "Duplicate request detected. Please try again.",
        CheckoutErrorCode.RATE_LIMITED: "Too many attempts. Please wait a few minutes and try again.",
        CheckoutErrorCode.REQUEST_TIMEOUT: "The request timed out. Please try again.",
        CheckoutErrorCode.GATEWAY_MISCONFIGURED: "The payment system is unavailable. Please reload the page.",
        CheckoutErrorCode.PAYMENT_FAILED: "Payment could not be processed. Please try again.",
        CheckoutErrorCode.SURFACE_UNAVAILABLE: "The payment form could not be loaded. Please try again.",
    },
}

# Field category named by each validation code
VALIDATION_FIELDS: dict[CheckoutErrorCode, LeadField] = {
    CheckoutErrorCode.INVALID_NAME: LeadField.FULL_NAME,
    CheckoutErrorCode.INVALID_EMAIL: LeadField.EMAIL,
    CheckoutErrorCode.INVALID_PHONE: LeadField.PHONE,
}


def get_error_message(code: CheckoutErrorCode, locale: str = DEFAULT_LOCALE) -> str:
    """Get the localized inline message for an error code.

    Unknown locales fall back to the default locale.
    """
    table = ERROR_MESSAGES.get(locale) or ERROR_MESSAGES[DEFAULT_LOCALE]
    return table[code]


class CheckoutError(Exception):
    """Exception raised by checkout stages for recoverable, inline errors.

    Always caught at the stage boundary and rendered as the step's single
    inline message.
    """

    def __init__(
        self,
        code: CheckoutErrorCode,
        locale: str = DEFAULT_LOCALE,
        details: dict[str, str] | None = None,
    ):
        self.code = code
        self.message = get_error_message(code, locale)
        self.details = details
        super().__init__(self.message)

    @property
    def field(self) -> LeadField | None:
        """Field category for validation errors, None otherwise."""
        return VALIDATION_FIELDS.get(self.code)


# === Error Translator ===

GATEWAY_ERROR_MESSAGES: dict[str, dict[GatewayErrorCategory, str]] = {
    "pt": {
        GatewayErrorCategory.CARD_DECLINED: "Seu cartão foi recusado. Tente outro método de pagamento.",
        GatewayErrorCategory.INSUFFICIENT_FUNDS: "Saldo insuficiente. Verifique seu limite.",
        GatewayErrorCategory.EXPIRED_CARD: "Cartão expirado. Use outro cartão.",
        GatewayErrorCategory.INCORRECT_NUMBER: "Número do cartão incorreto.",
        GatewayErrorCategory.INCORRECT_CVC: "Código de segurança incorreto.",
        GatewayErrorCategory.PROCESSING_ERROR: "Erro no processamento. Tente novamente.",
        GatewayErrorCategory.AUTHENTICATION_REQUIRED: "Autenticação necessária. Complete a verificação.",
    },
    "en": {
        GatewayErrorCategory.CARD_DECLINED: "Your card was declined. Please try a different card.",
        GatewayErrorCategory.INSUFFICIENT_FUNDS: "Your card has insufficient funds. Please try a different card.",
        GatewayErrorCategory.EXPIRED_CARD: "Your card has expired. Please use a different card.",
        GatewayErrorCategory.INCORRECT_NUMBER: "The card number is incorrect. Please check and try again.",
        GatewayErrorCategory.INCORRECT_CVC: "The security code (CVC) is incorrect. Please check and try again.",
        GatewayErrorCategory.PROCESSING_ERROR: "A processing error occurred. Please try again.",
        GatewayErrorCategory.AUTHENTICATION_REQUIRED: "Authentication required. Please complete the verification.",
    },
}

# Gateway error/decline codes folded into the closed category set
GATEWAY_CODE_CATEGORIES: dict[str, GatewayErrorCategory] = {
    "card_declined": GatewayErrorCategory.CARD_DECLINED,
    "generic_decline": GatewayErrorCategory.CARD_DECLINED,
    "do_not_honor": GatewayErrorCategory.CARD_DECLINED,
    "insufficient_funds": GatewayErrorCategory.INSUFFICIENT_FUNDS,
    "expired_card": GatewayErrorCategory.EXPIRED_CARD,
    "incorrect_number": GatewayErrorCategory.INCORRECT_NUMBER,
    "invalid_number": GatewayErrorCategory.INCORRECT_NUMBER,
    "incorrect_cvc": GatewayErrorCategory.INCORRECT_CVC,
    "invalid_cvc": GatewayErrorCategory.INCORRECT_CVC,
    "processing_error": GatewayErrorCategory.PROCESSING_ERROR,
    "authentication_required": GatewayErrorCategory.AUTHENTICATION_REQUIRED,
    "payment_intent_authentication_failure": GatewayErrorCategory.AUTHENTICATION_REQUIRED,
}

# Raw gateway messages recognised when no code is supplied
GATEWAY_MESSAGE_CATEGORIES: dict[str, GatewayErrorCategory] = {
    "Your card was declined.": GatewayErrorCategory.CARD_DECLINED,
    "Your card has insufficient funds.": GatewayErrorCategory.INSUFFICIENT_FUNDS,
    "Your card has expired.": GatewayErrorCategory.EXPIRED_CARD,
    "Your card number is incorrect.": GatewayErrorCategory.INCORRECT_NUMBER,
    "Your card's security code is incorrect.": GatewayErrorCategory.INCORRECT_CVC,
    "Processing error": GatewayErrorCategory.PROCESSING_ERROR,
    "Authentication required": GatewayErrorCategory.AUTHENTICATION_REQUIRED,
}


def categorize_gateway_error(
    code: str | None,
    message: str | None = None,
    decline_code: str | None = None,
) -> GatewayErrorCategory | None:
    """Fold a gateway failure into one of the known categories.

    The decline code is more specific than the error code (a
    ``card_declined`` error may carry ``insufficient_funds``), so it is
    checked first.

    Returns:
        The category, or None when the failure is not recognised.
    """
    for candidate in (decline_code, code):
        if candidate and candidate in GATEWAY_CODE_CATEGORIES:
            return GATEWAY_CODE_CATEGORIES[candidate]
    if message:
        return GATEWAY_MESSAGE_CATEGORIES.get(message.strip())
    return None


def translate_gateway_error(
    code: str | None,
    message: str,
    locale: str = DEFAULT_LOCALE,
    decline_code: str | None = None,
) -> str:
    """Translate a gateway failure into a localized user-facing message.

    Args:
        code: Gateway error code (e.g. 'card_declined').
        message: Raw gateway message.
        locale: Target locale; unknown locales fall back to the default.
        decline_code: Optional, more specific decline code.

    Returns:
        Localized message for known categories, the raw message otherwise.
    """
    category = categorize_gateway_error(code, message, decline_code)
    if category is None:
        return message or get_error_message(CheckoutErrorCode.PAYMENT_FAILED, locale)
    table = GATEWAY_ERROR_MESSAGES.get(locale) or GATEWAY_ERROR_MESSAGES[DEFAULT_LOCALE]
    return table[category]
