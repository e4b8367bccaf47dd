from datetime import datetime
from typing import Iterable

MSG_OUTSIDE_HOURS = (
    "⏰ *Fora do horário de atendimento*.\n"
    "Nosso horário de atendimento é de *segunda a sábado, das 8h às 18h*.\n\n"
    "📅 Por favor, envie sua mensagem dentro do horário comercial."
)
MSG_HANDOFF_STARTED = (
    "👩‍💼 *Atendimento humano ativado.*\n"
    "Um atendente falará com você em até *{minutes} minutos*. Aguarde."
)
MSG_HANDOFF_ENDED = (
    "⏳ *O atendimento humano foi encerrado.* O bot está ativo novamente para continuar ajudando você."
)
MSG_CLOSED = "❌ *Conversa encerrada.*\nObrigado pelo contato! Até logo! 😊"
MSG_UNRECOGNIZED = "🤔 *Não entendi sua mensagem.* Digite \"menu\" para ver as opções disponíveis."
MSG_INVALID_OPTION = "❓ *Opção inválida.* Digite \"menu\" para ver as opções disponíveis."

MSG_FILE_RECEIVED = "📥 *Arquivo recebido.* Estamos processando seu pedido..."
MSG_FILE_PROCESSED = "✅ *Seu arquivo foi processado com sucesso.*"
MSG_PAYMENT = "💳 *Para pagamento, use a chave Pix: {pix_key}.*"
MSG_INVALID_FORMAT = "⚠️ *Formato inválido.* Aceitamos apenas *{types}*."
MSG_AUDIO_REJECTED = "🎧 *Não processamos áudios.* Envie o arquivo em *{types}*."
MSG_UNREADABLE_FILE = "⚠️ *Não consegui ler o arquivo enviado.* Tente enviar novamente."
MSG_PROCESSING_FAILED = "❌ *Não foi possível processar seu arquivo agora.* Tente enviar novamente em instantes."

MSG_PICKUP_READY = "📦 *Seu pedido está pronto para retirada!* Estamos te esperando na {shop_name}."
MSG_FEEDBACK_REQUEST = (
    "🙏 *Obrigado por escolher a {shop_name}!* Como foi o atendimento? Responda 👍 ou 👎."
)
MSG_FEEDBACK_POSITIVE = "😊 *Obrigado pelo feedback positivo!* Ficamos felizes em ajudar."
MSG_FEEDBACK_NEGATIVE = "🙏 *Obrigado pelo feedback.* Vamos usar sua opinião para melhorar nosso atendimento."


def greeting(name: str, now: datetime) -> str:
    hour = now.hour
    if 6 <= hour < 12:
        return f"🌅 *Bom dia, {name}!* Como posso ajudar você hoje?"
    if 12 <= hour < 18:
        return f"🌞 *Boa tarde, {name}!* Em que posso ser útil?"
    return f"🌙 *Boa noite, {name}!* Precisa de algo?"


def describe_types(types: Iterable[str]) -> str:
    labels = [t.upper() for t in types]
    if len(labels) <= 1:
        return "".join(labels)
    return ", ".join(labels[:-1]) + " ou " + labels[-1]


def feedback_thanks(value: str) -> str:
    return MSG_FEEDBACK_POSITIVE if value == "positive" else MSG_FEEDBACK_NEGATIVE
