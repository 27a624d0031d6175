"""Núcleo do Table Suite: configuração, modelo de nós, engine e rastreabilidade."""
