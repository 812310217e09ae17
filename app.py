"""Streamlit front-end for the workshop enrollment manager."""

from __future__ import annotations

import csv
import io
from datetime import date
from html import escape
from pathlib import Path

import streamlit as st

from enrollment import data_loader
from enrollment.models import ADULT, MAX_CHOICES, MINOR, SEX_CATEGORIES, Participant, Workshop
from enrollment.registry import RegistrationError, Registry, RegistryStateError

DATA_DIR = Path(__file__).parent / "data"
WORKSHOPS_FILE = DATA_DIR / "oficinas.csv"
PARTICIPANTS_FILE = DATA_DIR / "participantes.txt"

SEX_OPTIONS: list[str] = [*SEX_CATEGORIES, "Outro"]
OLDEST_BIRTH_DATE = date(1900, 1, 1)


def build_table_html(rows: list[dict[str, str]], columns: list[str]) -> str:
    header_html = "".join(f"<th>{escape(column)}</th>" for column in columns)
    body_rows = []
    for row in rows:
        cells = [row.get(column, "") for column in columns]
        cell_html = "".join(f"<td>{escape(str(value))}</td>" for value in cells)
        body_rows.append(f"<tr>{cell_html}</tr>")
    body_html = "".join(body_rows)
    return (
        "<table class='inscricoes-table'>"
        f"<thead><tr>{header_html}</tr></thead>"
        f"<tbody>{body_html}</tbody>"
        "</table>"
    )


def stats_csv(rows: list[dict[str, str]], columns: list[str]) -> bytes:
    """Statistics table as CSV in display column order, UTF-8 with a BOM."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(columns)
    writer.writerows([row.get(column, "") for column in columns] for row in rows)
    return buffer.getvalue().encode("utf-8-sig")


def format_percentage(value: float) -> str:
    return f"{value:.1f}%"


def workshop_option_label(workshop: Workshop) -> str:
    if workshop.is_full:
        return f"{workshop.title} (lotada)"
    return f"{workshop.title} ({workshop.available_seats} vagas)"


def availability_rows(registry: Registry) -> list[dict[str, str]]:
    available = registry.available_seats()
    return [
        {
            "Oficina": title,
            "Vagas": str(workshop.max_seats),
            "Inscritos": str(workshop.occupied_seats),
            "Disponíveis": str(available[title]),
        }
        for title, workshop in registry.workshops.items()
    ]


def sex_stats_rows(registry: Registry) -> list[dict[str, str]]:
    return [
        {"Sexo": category, "Percentual": format_percentage(value)}
        for category, value in registry.stats_by_sex().items()
    ]


def workshop_stats_rows(registry: Registry) -> list[dict[str, str]]:
    return [
        {"Oficina": title, "Inscritos": str(count)}
        for title, count in registry.stats_by_workshop().items()
    ]


def age_stats_rows(registry: Registry, reference_date: date) -> list[dict[str, str]]:
    return [
        {
            "Oficina": title,
            MINOR: format_percentage(brackets[MINOR]),
            ADULT: format_percentage(brackets[ADULT]),
        }
        for title, brackets in registry.stats_by_age_bracket_per_workshop(reference_date).items()
    ]


def render_stats_table(rows: list[dict[str, str]], columns: list[str], *, file_name: str, key: str) -> None:
    st.markdown(build_table_html(rows, columns), unsafe_allow_html=True)
    st.download_button(
        "Baixar CSV",
        data=stats_csv(rows, columns),
        file_name=file_name,
        mime="text/csv",
        key=key,
    )


def main() -> None:
    st.set_page_config(page_title="Inscrições em Oficinas", layout="wide")

    st.title("Gerenciador de Inscrições em Oficinas")
    st.caption("Inscreva participantes em até três oficinas e acompanhe as vagas e estatísticas.")
    st.markdown(
        """
        <style>
        .inscricoes-table {width: 100%; border-collapse: collapse;}
        .inscricoes-table th, .inscricoes-table td {
            border: 1px solid #d9d9d9;
            padding: 0.5rem;
            text-align: left;
        }
        .inscricoes-table thead tr {background-color: #f8f9fa;}
        .sidebar-hint {font-size: 0.75rem; color: #6c757d;}
        </style>
        """,
        unsafe_allow_html=True,
    )

    if "registry" not in st.session_state:
        try:
            st.session_state.registry = data_loader.load_registry(WORKSHOPS_FILE, PARTICIPANTS_FILE)
        except RegistryStateError as exc:
            st.error(f"Erro ao carregar os dados: {exc}")
            st.stop()
    registry: Registry = st.session_state.registry

    with st.sidebar:
        st.header("Dados")
        st.markdown(
            f"<p class='sidebar-hint'>Oficinas: {escape(str(WORKSHOPS_FILE))}<br>"
            f"Participantes: {escape(str(PARTICIPANTS_FILE))}</p>",
            unsafe_allow_html=True,
        )
        reference_date = st.date_input("Data de referência", value=date.today(), key="reference_date")

        if st.button("Salvar dados", type="primary", use_container_width=True):
            try:
                data_loader.save_registry(registry, WORKSHOPS_FILE, PARTICIPANTS_FILE)
                st.success("Dados salvos.")
            except OSError as exc:
                st.error(f"Erro ao salvar os dados: {exc}")

        if st.button("Recarregar do disco", use_container_width=True):
            st.session_state.pop("registry", None)
            st.rerun()

    st.subheader("Nova inscrição")
    with st.form("registration", clear_on_submit=True):
        name = st.text_input("Nome")
        national_id = st.text_input("CPF")
        sex = st.selectbox("Sexo", SEX_OPTIONS)
        birth_date = st.date_input(
            "Data de nascimento",
            value=None,
            min_value=OLDEST_BIRTH_DATE,
            max_value=date.today(),
            format="DD/MM/YYYY",
        )
        chosen_titles = st.multiselect(
            f"Oficinas (até {MAX_CHOICES})",
            options=list(registry.workshops.keys()),
            format_func=lambda title: workshop_option_label(registry.workshops[title]),
            max_selections=MAX_CHOICES,
        )
        submitted = st.form_submit_button("Inscrever")

    if submitted:
        if not name.strip() or not national_id.strip() or birth_date is None:
            st.error("Nome, CPF e data de nascimento são obrigatórios.")
        else:
            candidate = Participant(
                name=name.strip(),
                national_id=national_id.strip(),
                sex=sex,
                birth_date=birth_date,
            )
            try:
                registry.register(candidate, chosen_titles, reference_date)
                st.success("Participante inscrito nas oficinas selecionadas.")
            except RegistrationError as exc:
                st.error(str(exc))

    st.divider()
    st.subheader("Vagas disponíveis")
    st.markdown(
        build_table_html(availability_rows(registry), ["Oficina", "Vagas", "Inscritos", "Disponíveis"]),
        unsafe_allow_html=True,
    )

    st.divider()
    lookup_col, minors_col = st.columns(2)

    with lookup_col:
        st.subheader("Consulta por CPF")
        lookup_id = st.text_input("CPF a consultar", key="lookup_id")
        if lookup_id.strip():
            summary = registry.find_by_identity(lookup_id.strip(), reference_date)
            if summary is None:
                st.warning(f"Participante com CPF {lookup_id.strip()} não encontrado.")
            else:
                st.info(summary.describe())

    with minors_col:
        st.subheader("Menores de idade por oficina")
        minors_title = st.selectbox("Oficina", list(registry.workshops.keys()), key="minors_title")
        minors = registry.minors_in(minors_title, reference_date) if minors_title else []
        if minors:
            st.markdown("\n".join(f"- {escape(minor)}" for minor in minors))
        else:
            st.info("Nenhum menor de idade inscrito nesta oficina.")

    st.divider()
    st.subheader("Estatísticas")
    st.caption(f"{registry.total_participants} participantes inscritos.")
    sex_tab, workshop_tab, age_tab = st.tabs(["Por sexo", "Por oficina", "Por faixa etária"])

    with sex_tab:
        sex_rows = sex_stats_rows(registry)
        if sex_rows:
            render_stats_table(sex_rows, ["Sexo", "Percentual"], file_name="estatisticas_sexo.csv", key="sex_csv")
        else:
            st.info("Ainda não há participantes inscritos.")

    with workshop_tab:
        render_stats_table(
            workshop_stats_rows(registry),
            ["Oficina", "Inscritos"],
            file_name="estatisticas_oficinas.csv",
            key="workshop_csv",
        )

    with age_tab:
        render_stats_table(
            age_stats_rows(registry, reference_date),
            ["Oficina", MINOR, ADULT],
            file_name="estatisticas_faixa_etaria.csv",
            key="age_csv",
        )


if __name__ == "__main__":
    main()
