"""Last-resort responder pointing users to the official portal."""

from .base import ProviderResponse

MESSAGES = {
    "en": (
        "I don't have an answer for that yet. The official UAE government portal "
        "at https://u.ae lists every federal service."
    ),
    "ar": (
        "لا تتوفر لدي إجابة على ذلك حاليًا. يمكنك الاطلاع على جميع الخدمات الاتحادية "
        "عبر البوابة الرسمية لحكومة الإمارات https://u.ae"
    ),
}


class StaticResponder:
    """Always answers with a fixed pointer; never raises."""

    name = "static"

    async def respond(self, query: str, language: str = "en") -> ProviderResponse:
        return ProviderResponse(
            content=MESSAGES.get(language, MESSAGES["en"]),
            provider=self.name,
            confidence="low",
        )
