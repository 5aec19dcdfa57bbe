"""Wincpl XML documents shared by the parser, import and API tests."""

from __future__ import annotations


def vehicle_xml(
    code: str = "TR042",
    immat: str = "AB-123-CD",
    *,
    km: str = "152300",
    comment: str = "Révision à prévoir",
    declaration: bool = True,
) -> str:
    header = '<?xml version="1.0" encoding="ISO-8859-1"?>\n' if declaration else ""
    return (
        f'{header}<ITEM Type="VEHICULE" Action="M" Date="20260310" Heure="081500">'
        "<IDSOCIETE>1</IDSOCIETE>"
        "<IDAGENCE>3</IDAGENCE>"
        f"<CODE_VEHICULE>{code}</CODE_VEHICULE>"
        f"<IMMATRICULATION>{immat}</IMMATRICULATION>"
        "<CATEGORIE_VEHICULE>PL</CATEGORIE_VEHICULE>"
        "<TYPE_VEHICULE>2</TYPE_VEHICULE>"
        "<MARQUE_VEHICULE>VOLVO FH</MARQUE_VEHICULE>"
        "<EN_ACTIVITE>1</EN_ACTIVITE>"
        "<ENERGIE_VEHICULE>GO</ENERGIE_VEHICULE>"
        "<CONT_RES>600</CONT_RES>"
        "<POIDS_A_VIDE>7500,5</POIDS_A_VIDE>"
        "<PTAC>19000</PTAC>"
        "<NB_ESSIEUX>2</NB_ESSIEUX>"
        "<CRITAIR>2</CRITAIR>"
        f"<KM_COMPTEUR>{km}</KM_COMPTEUR>"
        "<DATE_MISE_CIRCUL>20190415</DATE_MISE_CIRCUL>"
        f"<COMMENTAIRE>{comment}</COMMENTAIRE>"
        "<VEHICULE_KM>"
        "<KM><DATE>20260301</DATE><KM>151000</KM></KM>"
        f"<KM><DATE>20260310</DATE><KM>{km}</KM></KM>"
        "</VEHICULE_KM>"
        "</ITEM>"
    )


def absence_xml(
    code_lien: str = "TR042",
    numero: str = "ABS1",
    *,
    date_fin: str = "20260320",
    motif: str = "ENT",
) -> str:
    return (
        '<?xml version="1.0" encoding="ISO-8859-1"?>\n'
        '<ITEM Type="ABSENCE" Action="C" Date="20260310" Heure="090000">'
        "<TYPE_LIEN>VEHICULE</TYPE_LIEN>"
        f"<CODE_LIEN>{code_lien}</CODE_LIEN>"
        "<DATE_DEBUT>20260318</DATE_DEBUT>"
        "<HEURE_DEBUT>0800</HEURE_DEBUT>"
        f"<DATE_FIN>{date_fin}</DATE_FIN>"
        "<HEURE_FIN>1800</HEURE_FIN>"
        f"<CODE_MOTIF>{motif}</CODE_MOTIF>"
        f"<NUMERO>{numero}</NUMERO>"
        "<STATUS>1</STATUS>"
        "</ITEM>"
    )


def detailed_vehicle_xml(code: str = "TR077") -> str:
    """A vehicle carrying engine, body, emission, lifecycle and insurance data."""
    return (
        '<ITEM Type="VEHICULE" Action="C" Date="20260311" Heure="100000">'
        f"<CODE_VEHICULE>{code}</CODE_VEHICULE>"
        "<IMMATRICULATION>EF-456-GH</IMMATRICULATION>"
        "<INTERNE>N</INTERNE>"
        "<NUMERO_CHASSIS>YV2RT40A8LB123456</NUMERO_CHASSIS>"
        "<NUMERO_MOTEUR>D13K-998877</NUMERO_MOTEUR>"
        "<PUISSANCE_VEHICULE>44</PUISSANCE_VEHICULE>"
        "<PUISSANCE_KW>338</PUISSANCE_KW>"
        "<NB_VITESSES>12</NB_VITESSES>"
        "<TURBO_COMPR>1</TURBO_COMPR>"
        "<LONGUEUR_TOTALE>6,10</LONGUEUR_TOTALE>"
        "<VOLUME_MAXI>0</VOLUME_MAXI>"
        "<POIDS_TOTAL_ROULANT>44 000</POIDS_TOTAL_ROULANT>"
        "<POIDS_MOYEN_ESSIEU>9500</POIDS_MOYEN_ESSIEU>"
        "<TYPE_CARROSSERIE>TRACTEUR</TYPE_CARROSSERIE>"
        "<GENRE_CG>TRR</GENRE_CG>"
        "<NB_PLACES_ASSISES>2</NB_PLACES_ASSISES>"
        "<CONT_RES_AUX>400</CONT_RES_AUX>"
        "<CONSO_MIXTE>31,5</CONSO_MIXTE>"
        "<CO2>820</CO2>"
        "<PROFIL_CO2>LONGUE DISTANCE</PROFIL_CO2>"
        "<ADBLUE>1</ADBLUE>"
        "<FILTRE_A_PARTICULES>0</FILTRE_A_PARTICULES>"
        "<CONT_HUILE>36</CONT_HUILE>"
        "<DATE_ACHAT>20180301</DATE_ACHAT>"
        "<KM_ACHAT>12</KM_ACHAT>"
        "<DATE_FIN_GARANTIE_VEH>20210301</DATE_FIN_GARANTIE_VEH>"
        "<KM_FIN_GARANTIE_VEH>450000</KM_FIN_GARANTIE_VEH>"
        "<IMMATRICUL_PRECEDENTE>AA-999-ZZ</IMMATRICUL_PRECEDENTE>"
        "<CODE_ASSUREUR>AXA</CODE_ASSUREUR>"
        "<ASSUR_NUM_CONTRAT>FL-2026-0042</ASSUR_NUM_CONTRAT>"
        "<ASSUR_DATE_ECHEANCE>20261231</ASSUR_DATE_ECHEANCE>"
        "<ASSUR_MONTANT_ASSURANCE>1 250,50</ASSUR_MONTANT_ASSURANCE>"
        "<ASSUR_CODE_DEVISE>EUR</ASSUR_CODE_DEVISE>"
        "<TYPE_TRANSPORT>FRIGO</TYPE_TRANSPORT>"
        "<NB_CUVES>0</NB_CUVES>"
        "<EN_VENTE>0</EN_VENTE>"
        "<VENDU>0</VENDU>"
        "<VISIBLE_TRANSP>1</VISIBLE_TRANSP>"
        "<VISIBLE_GARAGE>1</VISIBLE_GARAGE>"
        "<LICENCE>LIC-77</LICENCE>"
        "<TEL_VEHICULE>0601020304</TEL_VEHICULE>"
        "<CODE_ELIOTIME>E-77</CODE_ELIOTIME>"
        "</ITEM>"
    )
