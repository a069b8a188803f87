"""
Глобальные функции, доступные каждому шаблону окружения.
"""

from __future__ import annotations

import random
from typing import Any, Callable, Dict

from markupsafe import Markup, escape

from .i18n import I18N_GLOBALS
from .runtime.objects import Cycler, Joiner, Namespace
from .utils import pass_context

_LIPSUM_WORDS = (
    "a ac accumsan ad adipiscing aenean aliquam aliquet amet ante aptent arcu at auctor "
    "augue bibendum blandit class commodo condimentum congue consectetuer consequat conubia "
    "convallis cras cubilia cum curabitur curae cursus dapibus diam dictum dictumst dignissim "
    "dis dolor donec dui duis egestas eget eleifend elementum elit enim erat eros est et etiam "
    "eu euismod facilisi facilisis fames faucibus felis fermentum feugiat fringilla fusce "
    "gravida habitant habitasse hac hendrerit hymenaeos iaculis id imperdiet in inceptos "
    "integer interdum ipsum justo lacinia lacus laoreet lectus leo libero ligula litora "
    "lobortis lorem luctus maecenas magna magnis malesuada massa mattis mauris metus mi "
    "molestie mollis montes morbi mus nam nascetur natoque nec neque netus nibh nisi nisl non "
    "nonummy nostra nulla nullam nunc odio orci ornare parturient pede pellentesque penatibus "
    "per pharetra phasellus placerat platea porta porttitor posuere potenti praesent pretium "
    "primis proin pulvinar purus quam quis quisque rhoncus ridiculus risus rutrum sagittis "
    "sapien scelerisque sed sem semper senectus sit sociis sociosqu sodales sollicitudin "
    "suscipit suspendisse taciti tellus tempor tempus tincidunt torquent tortor tristique "
    "turpis ullamcorper ultrices ultricies urna ut varius vehicula vel velit venenatis "
    "vestibulum vitae vivamus viverra volutpat vulputate"
).split()


@pass_context
def bounded_range(context: Any, *args: int) -> range:
    """
    ``range`` с учётом лимита памяти политики: длина диапазона
    списывается со счётчика материализованных элементов.
    """
    rng = range(*args)
    context.state.charge_memory(len(rng))
    return rng


def generate_lorem_ipsum(n: int = 5, html: bool = True, min: int = 20, max: int = 100) -> str:
    """
    Генерирует ``n`` абзацев текста-рыбы.

    Args:
        n: Количество абзацев
        html: Обернуть абзацы в ``<p>`` и вернуть Markup
        min: Минимальное число слов в абзаце
        max: Максимальное число слов в абзаце
    """
    result = []
    for _ in range(n):
        next_capitalized = True
        last_comma = last_fullstop = 0
        last = ""
        words = []
        for idx in range(random.randint(min, max)):
            while True:
                word = random.choice(_LIPSUM_WORDS)
                if word != last:
                    last = word
                    break
            if next_capitalized:
                word = word.capitalize()
                next_capitalized = False
            if idx - random.randint(3, 8) > last_comma:
                last_comma = idx
                last_fullstop += 2
                word += ","
            if idx - random.randint(10, 20) > last_fullstop:
                last_comma = last_fullstop = idx
                word += "."
                next_capitalized = True
            words.append(word)
        p = " ".join(words)
        if p.endswith(","):
            p = p[:-1] + "."
        elif not p.endswith("."):
            p += "."
        result.append(p)
    if not html:
        return "\n\n".join(result)
    return Markup("\n".join(f"<p>{escape(x)}</p>" for x in result))


DEFAULT_GLOBALS: Dict[str, Callable[..., Any]] = {
    "range": bounded_range,
    "dict": dict,
    "lipsum": generate_lorem_ipsum,
    "cycler": Cycler,
    "joiner": Joiner,
    "namespace": Namespace,
    **I18N_GLOBALS,
}


__all__ = ["DEFAULT_GLOBALS", "bounded_range", "generate_lorem_ipsum"]
