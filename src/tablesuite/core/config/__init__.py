# src/tablesuite/core/config/__init__.py

"""
Camada de configuração do Table Suite.

Responsabilidades do pacote:
    - Carregamento de arquivos de configuração (defaults + overrides locais)
    - Resolução de configuração final via deep-merge determinístico
    - Conversão em registros tipados (`SuiteConfig`)
    - Geração de hash canônico para o manifest da run

Princípios fundamentais:
    - Nenhuma heurística implícita durante merge
    - Erros de configuração são fatais e ocorrem antes da execução
    - A mesma entrada sempre produz a mesma configuração final
"""
