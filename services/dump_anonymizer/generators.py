"""Synthetic value generators keyed by the type tags used in the catalog.

Every generator receives the literal text currently stored in the row and
returns the replacement text. Most generators ignore the current value; it is
passed so custom generators can preserve formats. The registry is frozen once
built and shared by every statement worker.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Callable, Iterator, Mapping

from faker import Faker

from .errors import UnknownGeneratorError

__all__ = [
    "DEFAULT_TAGS",
    "Generator",
    "GeneratorRegistry",
    "build_registry",
]

Generator = Callable[[str], str]

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_11_2) AppleWebKit/601.3.9 "
    "(KHTML, like Gecko) Version/9.0.2 Safari/601.3.9"
)

DEFAULT_TAGS: tuple[str, ...] = (
    "username",
    "password",
    "email",
    "url",
    "name",
    "firstName",
    "lastName",
    "paragraph",
    "ipv4",
)


class GeneratorRegistry(Mapping[str, Generator]):
    """Read-only mapping from type tag to :data:`Generator`."""

    __slots__ = ("_generators",)

    def __init__(self, generators: Mapping[str, Generator]) -> None:
        self._generators: Mapping[str, Generator] = MappingProxyType(dict(generators))

    def __getitem__(self, tag: str) -> Generator:
        return self._generators[tag]

    def __iter__(self) -> Iterator[str]:
        return iter(self._generators)

    def __len__(self) -> int:
        return len(self._generators)

    def resolve(self, tag: str) -> Generator:
        """Return the generator for ``tag`` or raise :class:`UnknownGeneratorError`."""

        generator = self._generators.get(tag)
        if generator is None:
            raise UnknownGeneratorError(tag)
        return generator

    def generate(self, tag: str, current: str) -> str:
        return self.resolve(tag)(current)


def _phone_number(faker: Faker) -> str:
    digits = faker.random_int(min=7, max=11)
    return "0" + "".join(str(faker.random_digit()) for _ in range(digits))


def _faker_generators(faker: Faker) -> dict[str, Generator]:
    return {
        "username": lambda _current: faker.user_name(),
        "password": lambda _current: faker.password(length=faker.random_int(min=8, max=14)),
        "email": lambda _current: faker.safe_email(),
        "url": lambda _current: faker.url(),
        "name": lambda _current: faker.name(),
        "firstName": lambda _current: faker.first_name(),
        "lastName": lambda _current: faker.last_name(),
        "paragraph": lambda _current: faker.sentence(nb_words=3),
        "ipv4": lambda _current: faker.ipv4(),
        "phoneNumber": lambda _current: _phone_number(faker),
        "companyName": lambda _current: faker.company(),
        "street": lambda _current: faker.street_name(),
        "buildingNumber": lambda _current: faker.building_number(),
        "secondaryAddress": lambda _current: faker.secondary_address(),
        "city": lambda _current: faker.city(),
        "zip": lambda _current: faker.postcode(),
        "state": lambda _current: faker.state(),
        "country": lambda _current: faker.country(),
        "prefix": lambda _current: faker.prefix(),
        "longParagraph": lambda _current: faker.paragraph(nb_sentences=3),
        "word": lambda _current: faker.word(),
        "userAgent": lambda _current: DEFAULT_USER_AGENT,
        "redacted": lambda _current: "REDACTED",
    }


def build_registry(
    faker: Faker | None = None,
    *,
    seed: int | None = None,
    locale: str = "en_US",
    extra: Mapping[str, Generator] | None = None,
) -> GeneratorRegistry:
    """Build the default generator registry.

    ``seed`` seeds the Faker instance so repeated runs over the same dump
    produce the same substitutions (as long as statements are processed in
    the same order). ``extra`` adds or overrides tags before the registry is
    frozen.
    """

    faker_instance = faker or Faker(locale)
    if seed is not None:
        faker_instance.seed_instance(seed)

    generators = _faker_generators(faker_instance)
    if extra:
        generators.update(extra)
    return GeneratorRegistry(generators)
