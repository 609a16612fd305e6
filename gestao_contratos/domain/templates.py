# SPDX-License-Identifier: Apache-2.0

"""
Fiscalization report templates.

The template is picked once, when a report is created, from the agreement's
document type keyword. Matching is by substring, in table order, and falls
through to the generic template.
"""

import copy
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from ..models.entities import Agreement, ReportContent
from ..models.enums import AgreementKind, ReportTemplateKind


def _checkbox(field_id: str, label: str) -> Dict[str, Any]:
    return {"id": field_id, "label": label, "type": "checkbox", "value": False}


def _textarea(field_id: str, label: str, value: str) -> Dict[str, Any]:
    return {"id": field_id, "label": label, "type": "textarea", "value": value}


NO_OCCURRENCES = "Nenhuma ocorrência registrada."


@dataclass(frozen=True)
class ReportTemplate:
    """Fixed set of sections for one kind of agreement."""
    kind: ReportTemplateKind
    keywords: Tuple[str, ...]
    sections: Tuple[Dict[str, Any], ...]

    def build_sections(self) -> List[Dict[str, Any]]:
        """Fresh, independently editable copy of the sections."""
        return copy.deepcopy(list(self.sections))


CONTINUOUS_SERVICE = ReportTemplate(
    kind=ReportTemplateKind.CONTINUOUS_SERVICE,
    keywords=("CONTÍNUO", "PRESTAÇÃO DE SERVIÇO", "SOFTWARE"),
    sections=(
        {"title": "1. EXECUÇÃO DO OBJETO", "fields": [
            _checkbox("servico_continuo", "O serviço foi prestado de forma contínua e sem interrupções?"),
            _checkbox("qualidade_ok", "A qualidade do serviço atendeu ao contratado?"),
            _checkbox("prazos_ok", "Os prazos e cronogramas foram cumpridos?"),
        ]},
        {"title": "2. OCORRÊNCIAS", "fields": [
            _textarea("ocorrencias", "Descreva ocorrências, se houver.", NO_OCCURRENCES),
        ]},
        {"title": "3. CONCLUSÃO", "fields": [
            _textarea(
                "conclusao", "Observações finais do fiscal.",
                "Declaro que os serviços foram recebidos e estão de acordo, autorizando o pagamento."
            ),
        ]},
    )
)

PUBLIC_WORKS = ReportTemplate(
    kind=ReportTemplateKind.PUBLIC_WORKS,
    keywords=("OBRA",),
    sections=(
        {"title": "1. ANDAMENTO DA OBRA", "fields": [
            _checkbox("cronograma_ok", "O cronograma físico-financeiro está sendo cumprido?"),
            _checkbox("medicoes_ok", "As medições do período foram realizadas e conferidas?"),
            _checkbox("qualidade_obra_ok", "A qualidade dos materiais e da execução está conforme o projeto?"),
        ]},
        {"title": "2. OCORRÊNCIAS", "fields": [
            _textarea("ocorrencias_obra", "Descreva ocorrências ou desvios.", NO_OCCURRENCES),
        ]},
        {"title": "3. CONCLUSÃO", "fields": [
            _textarea(
                "conclusao_obra", "Parecer do fiscal.",
                "Atesto a execução da etapa fiscalizada, autorizando o pagamento da medição."
            ),
        ]},
    )
)

GOODS_ACQUISITION = ReportTemplate(
    kind=ReportTemplateKind.GOODS_ACQUISITION,
    keywords=("AQUISIÇÃO", "ITEM", "MATERIAL"),
    sections=(
        {"title": "1. RECEBIMENTO E CONFORMIDADE", "fields": [
            _checkbox("prazo_entrega_ok", "Os materiais foram entregues dentro do prazo?"),
            _checkbox("quantidade_ok", "A quantidade entregue confere com a nota fiscal e o pedido?"),
            _checkbox("especificacoes_ok", "As especificações dos materiais estão de acordo com o solicitado?"),
        ]},
        {"title": "2. OCORRÊNCIAS", "fields": [
            _textarea("ocorrencias_material", "Descreva avarias, faltas ou trocas.", NO_OCCURRENCES),
        ]},
        {"title": "3. CONCLUSÃO", "fields": [
            _textarea(
                "conclusao_material", "Observações sobre o recebimento.",
                "Declaro o recebimento e conformidade dos materiais, autorizando o pagamento."
            ),
        ]},
    )
)

GENERIC = ReportTemplate(
    kind=ReportTemplateKind.GENERIC,
    keywords=(),
    sections=(
        {"title": "1. EXECUÇÃO DO OBJETO", "fields": [
            _checkbox("execucao_ok", "O objeto foi executado/entregue conforme as especificações?"),
            _checkbox("prazos_geral_ok", "Os prazos foram cumpridos?"),
        ]},
        {"title": "2. OCORRÊNCIAS", "fields": [
            _textarea("ocorrencias_geral", "Descreva qualquer ocorrência.", NO_OCCURRENCES),
        ]},
        {"title": "3. CONCLUSÃO", "fields": [
            _textarea(
                "conclusao_geral", "Parecer final do fiscal.",
                "Declaro para os devidos fins que os serviços/materiais foram recebidos e estão de "
                "acordo, autorizando o prosseguimento para pagamento."
            ),
        ]},
    )
)

# Order matters: first match wins
TEMPLATES = (CONTINUOUS_SERVICE, PUBLIC_WORKS, GOODS_ACQUISITION)


def select_template(category: str) -> ReportTemplate:
    """
    Choose the report template for a document type keyword.

    Args:
        category: Document type, e.g. "PRESTAÇÃO DE SERVIÇO" or "OBRAS"

    Returns:
        The first template with a keyword contained in the category, else GENERIC
    """
    normalized = (category or "").upper()
    for template in TEMPLATES:
        if any(keyword in normalized for keyword in template.keywords):
            return template
    return GENERIC


def build_report_header(agreement: Agreement) -> str:
    if agreement.kind == AgreementKind.CONTRACT:
        lines = [f"Referência: Contrato nº {agreement.identifier}"]
        lines.append(f"Contratado: {agreement.supplier or ''}")
    else:
        lines = [f"Referência: Ata nº {agreement.identifier}"]
    lines.append(f"Objeto: {agreement.subject}")
    return "\n".join(lines)


def build_report_content(agreement: Agreement) -> ReportContent:
    """Initial report content for an agreement, from its template."""
    template = select_template(agreement.category)
    title = (
        "RELATÓRIO DE FISCALIZAÇÃO DE CONTRATO"
        if agreement.kind == AgreementKind.CONTRACT
        else "RELATÓRIO DE ACOMPANHAMENTO DE ATA"
    )
    return ReportContent(
        template=template.kind.value,
        title=title,
        header=build_report_header(agreement),
        sections=template.build_sections()
    )
