"""
Projekt, affärsområden och kontakter.

POST .../new ger ett osparat tomt objekt med nytt id (som formuläret i
frontenden fyller i). PUT sparar. DELETE avböjs med 409 så länge någon
offert eller mall pekar på posten.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from quotely.core.errors import QuoteValidationError
from quotely.server.deps import get_store, raise_for_outcome
from quotely.server.models import BusinessDomain, Contact, Project
from quotely.services.quote_store import QuoteStore

router = APIRouter(tags=["directory"])


def _check_id(path_id: str, body_id: str) -> None:
    if path_id != body_id:
        raise HTTPException(status_code=400, detail="Id in body does not match the URL")


# ==============================
# PROJEKT
# ==============================

@router.get("/projects")
def list_projects(store: QuoteStore = Depends(get_store)) -> List[dict]:
    return [p.to_json_dict() for p in store.projects]


@router.get("/projects/{project_id}")
def get_project(project_id: str, store: QuoteStore = Depends(get_store)):
    project = store.get_project_by_id(project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return project.to_json_dict()


@router.post("/projects/new")
def new_project(store: QuoteStore = Depends(get_store)):
    return store.new_project().to_json_dict()


@router.put("/projects/{project_id}")
def save_project(project_id: str, payload: Project, store: QuoteStore = Depends(get_store)):
    _check_id(project_id, payload.id)
    try:
        return store.save_project(payload).to_json_dict()
    except QuoteValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/projects/{project_id}")
def delete_project(project_id: str, store: QuoteStore = Depends(get_store)):
    raise_for_outcome(store.delete_project(project_id), "Project")
    return {"status": "deleted", "id": project_id}


# ==============================
# AFFÄRSOMRÅDEN
# ==============================

@router.get("/domains")
def list_domains(store: QuoteStore = Depends(get_store)) -> List[dict]:
    return [d.to_json_dict() for d in store.domains]


@router.get("/domains/{domain_id}")
def get_domain(domain_id: str, store: QuoteStore = Depends(get_store)):
    domain = store.get_domain_by_id(domain_id)
    if domain is None:
        raise HTTPException(status_code=404, detail="Domain not found")
    return domain.to_json_dict()


@router.post("/domains/new")
def new_domain(store: QuoteStore = Depends(get_store)):
    return store.new_domain().to_json_dict()


@router.put("/domains/{domain_id}")
def save_domain(domain_id: str, payload: BusinessDomain, store: QuoteStore = Depends(get_store)):
    _check_id(domain_id, payload.id)
    try:
        return store.save_domain(payload).to_json_dict()
    except QuoteValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/domains/{domain_id}")
def delete_domain(domain_id: str, store: QuoteStore = Depends(get_store)):
    raise_for_outcome(store.delete_domain(domain_id), "Domain")
    return {"status": "deleted", "id": domain_id}


# ==============================
# KONTAKTER
# ==============================

@router.get("/contacts")
def list_contacts(store: QuoteStore = Depends(get_store)) -> List[dict]:
    return [c.to_json_dict() for c in store.contacts]


@router.get("/contacts/{contact_id}")
def get_contact(contact_id: str, store: QuoteStore = Depends(get_store)):
    contact = store.get_contact_by_id(contact_id)
    if contact is None:
        raise HTTPException(status_code=404, detail="Contact not found")
    return contact.to_json_dict()


@router.post("/contacts/new")
def new_contact(store: QuoteStore = Depends(get_store)):
    return store.new_contact().to_json_dict()


@router.put("/contacts/{contact_id}")
def save_contact(contact_id: str, payload: Contact, store: QuoteStore = Depends(get_store)):
    _check_id(contact_id, payload.id)
    try:
        return store.save_contact(payload).to_json_dict()
    except QuoteValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/contacts/{contact_id}")
def delete_contact(contact_id: str, store: QuoteStore = Depends(get_store)):
    raise_for_outcome(store.delete_contact(contact_id), "Contact")
    return {"status": "deleted", "id": contact_id}
