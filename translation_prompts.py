from types import MappingProxyType


SOURCE_LANGUAGE = "Inglês"
TARGET_LANGUAGE = "Português"

DEFAULT_DIFFICULTY = "medio"

DIFFICULTY_INSTRUCTIONS = MappingProxyType({
    "facil": (
        "Use uma linguagem muito simples, frases curtas e vocabulário básico. "
        "O objetivo é que uma criança ou um iniciante em português consiga entender."
    ),
    "medio": (
        "Use uma linguagem padrão, mantendo a riqueza do texto original, mas garantindo "
        "clareza. O vocabulário deve ser acessível, mas não simplificado demais."
    ),
    "dificil": (
        "Use uma linguagem formal, vocabulário avançado, e mantenha todas as nuances e "
        "complexidades gramaticais do texto original. O objetivo é uma tradução "
        "literária e sofisticada."
    ),
})

# English keys sent by older front-ends.
DIFFICULTY_ALIASES = MappingProxyType({
    "easy": "facil",
    "medium": "medio",
    "hard": "dificil",
})

SYSTEM_PROMPT_TEMPLATE = (
    "Você é um tradutor literário profissional. Sua tarefa é traduzir o texto a seguir "
    "do {source} para o {target}. Mantenha o contexto e o tom da obra original. "
    "Além disso, você deve ajustar a complexidade da linguagem de acordo com a "
    'seguinte instrução: "{instruction}"'
)

USER_PROMPT_TEMPLATE = 'Traduza o seguinte texto: \n\n"""\n{text}\n"""'
