# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for report template selection.
"""

import pytest

from gestao_contratos.domain.templates import build_report_content, select_template
from gestao_contratos.models.enums import ReportTemplateKind


class TestSelectTemplate:
    """Test keyword matching."""

    @pytest.mark.parametrize("category,expected", [
        ("PRESTAÇÃO DE SERVIÇO", ReportTemplateKind.CONTINUOUS_SERVICE),
        ("serviço contínuo", ReportTemplateKind.CONTINUOUS_SERVICE),
        ("LICENÇA DE SOFTWARE", ReportTemplateKind.CONTINUOUS_SERVICE),
        ("OBRAS", ReportTemplateKind.PUBLIC_WORKS),
        ("AQUISIÇÃO DE MATERIAL", ReportTemplateKind.GOODS_ACQUISITION),
        ("LOCAÇÃO", ReportTemplateKind.GENERIC),
        ("", ReportTemplateKind.GENERIC),
        (None, ReportTemplateKind.GENERIC),
    ])
    def test_template_by_category(self, category, expected):
        assert select_template(category).kind == expected

    def test_first_match_wins(self):
        # Matches both the service and the works keywords
        assert select_template("PRESTAÇÃO DE SERVIÇO DE OBRA").kind == ReportTemplateKind.CONTINUOUS_SERVICE

    def test_sections_are_independent_copies(self):
        template = select_template("OBRAS")

        first = template.build_sections()
        first[0]["fields"][0]["value"] = True

        assert template.build_sections()[0]["fields"][0]["value"] is False


class TestBuildReportContent:
    """Test initial content."""

    def test_contract_content(self, agreement):
        content = build_report_content(agreement)

        assert content.template == ReportTemplateKind.CONTINUOUS_SERVICE.value
        assert content.title == "RELATÓRIO DE FISCALIZAÇÃO DE CONTRATO"
        assert "Contrato nº 80/2018" in content.header
        assert "Contratado: Limpa Tudo Ltda" in content.header
        assert len(content.sections) == 3

    def test_minute_content(self, agreement):
        minute = agreement.model_copy(update={"kind": "minute", "category": "AQUISIÇÃO"})

        content = build_report_content(minute)

        assert content.title == "RELATÓRIO DE ACOMPANHAMENTO DE ATA"
        assert content.header.startswith("Referência: Ata nº 80/2018")
        assert "Contratado" not in content.header
        assert content.template == ReportTemplateKind.GOODS_ACQUISITION.value
