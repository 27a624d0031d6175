# src/tablesuite/__init__.py
"""
Table Suite: harness de workloads em DAG para motores de tabela transacionais.

O Table Suite sintetiza um DAG de operações (geração de dados, insert,
upsert, sync de catálogo, validação), executa-o contra uma tabela alvo com
concorrência limitada e verifica se a timeline de commits da tabela
evoluiu exatamente como a execução implica.

Arquitetura em alto nível:
    - core.config       → carregamento, merge, hashing e registros tipados de configuração
    - core.dag          → modelo de nós, DAG imutável, estado de execução e contexto
    - core.engine       → planejamento determinístico e executor com pool limitado
    - core.traceability → Manifest e Event Log da run
    - actions           → ações generate / insert / upsert / sync / validate
    - generators        → variantes programáticas e parser de documentos de workload
    - targets           → contratos consumidos e motor/catálogo locais de referência
    - validation        → validador da timeline
    - suite             → orquestrador ponta a ponta (`SuiteJob`)

Limites explícitos:
    - Não implementa durabilidade nem atomicidade de escrita (propriedades do motor alvo)
    - Não deduplica dados
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
