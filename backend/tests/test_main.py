def test_read_root(client):
    response = client.get('/')
    assert response.status_code == 200
    assert response.json() == {"message": "sitepay API"}


def seed_month(client):
    client.post('/api/companies', json={'id': 'c1', 'name': '다원건설', 'type': 'constructor'})
    client.post('/api/teams', json={'id': 't1', 'name': '1팀', 'company_id': 'c1', 'company_name': '다원건설'})
    client.post('/api/sites', json={'id': 's1', 'name': '강남현장'})
    res = client.post('/api/workers', json={
        'id': 'w1', 'name': '김철수', 'team_id': 't1', 'team_name': '1팀', 'unit_price': 150000,
        'pay_model': 'monthly', 'bank_name': '국민은행', 'account_number': '123-456', 'account_holder': '김철수',
    })
    assert res.status_code == 200
    for date, man_day in (('2024-03-04', 1.0), ('2024-03-05', 0.5)):
        res = client.post('/api/daily-reports', json={
            'date': date, 'site_id': 's1', 'team_id': 't1',
            'workers': [{'worker_id': 'w1', 'man_day': man_day}],
        })
        assert res.status_code == 200
    res = client.put('/api/advance-payments', json={
        'worker_id': 'w1', 'team_id': 't1', 'year_month': '2024-03', 'accommodation': 50000,
    })
    assert res.status_code == 200
    return res.json()


def test_monthly_payroll_end_to_end(client):
    advance = seed_month(client)
    assert advance['id'] == 't1_w1_2024-03'
    assert advance['total_deduction'] == 50000

    res = client.get('/api/payroll/monthly', params={'month': '2024-03'})
    assert res.status_code == 200
    batch = res.json()
    assert batch['error_count'] == 0
    record = batch['records'][0]
    assert record['total_man_day'] == 1.5
    assert record['gross_amount'] == 225000
    assert record['total_deduction'] == 50000
    assert record['total_amount'] == 175000
    assert record['deduction_breakdown']['standard_lines'] == [{'label': '숙소비', 'amount': 50000}]


def test_advance_save_is_an_upsert(client):
    seed_month(client)
    client.put('/api/advance-payments', json={
        'worker_id': 'w1', 'team_id': 't1', 'year_month': '2024-03', 'accommodation': 20000, 'gloves': 3000,
    })
    saved = client.get('/api/advance-payments', params={'year_month': '2024-03'}).json()
    assert len(saved) == 1
    assert saved[0]['total_deduction'] == 23000


def test_invalid_month_is_rejected(client):
    assert client.get('/api/payroll/monthly', params={'month': '2024-13'}).status_code == 400
    assert client.get('/api/payroll/monthly').status_code == 400
    assert client.get('/api/payroll/monthly', params={'month': '2024-03', 'pay_model': 'x'}).status_code == 400


def test_export_csv_and_json(client):
    seed_month(client)
    res = client.get('/api/payroll/export', params={'month': '2024-03'})
    assert res.status_code == 200
    assert res.headers['content-type'].startswith('text/csv')
    assert '김철수 가불' in res.text

    rows = client.get('/api/payroll/export', params={'month': '2024-03', 'format': 'json'}).json()
    assert rows[0]['이체금액'] == 175000
    assert rows[0]['은행코드'] == '004'


def test_payslip(client):
    seed_month(client)
    res = client.get('/api/payroll/payslip', params={'month': '2024-03', 'worker_id': 'w1'})
    assert res.status_code == 200
    assert res.json()['rows'][0][0] == '월급제 노임명세서'
    missing = client.get('/api/payroll/payslip', params={'month': '2024-03', 'worker_id': 'nobody'})
    assert missing.status_code == 404


def test_collections_crud(client):
    res = client.post('/api/workers', json={'name': '이영희', 'unit_price': 120000})
    worker_id = res.json()['id']
    assert client.get(f'/api/workers/{worker_id}').json()['name'] == '이영희'

    res = client.patch(f'/api/workers/{worker_id}', json={'bank_name': '신한'})
    assert res.status_code == 200
    assert res.json()['bank_name'] == '신한'

    assert client.get('/api/workers/missing').status_code == 404
    assert client.get('/api/unknown').status_code == 404
    assert client.post('/api/workers', json={'unit_price': 1}).status_code == 422


def test_update_report_entry(client):
    seed_month(client)
    report_id = client.get('/api/daily-reports').json()[0]['id']
    res = client.patch(f'/api/daily-reports/{report_id}/workers/w1', json={'man_day': 2})
    assert res.status_code == 200
    assert res.json()['workers'][0]['man_day'] == 2
    assert client.patch(f'/api/daily-reports/{report_id}/workers/nobody', json={'man_day': 1}).status_code == 404
    assert client.patch(f'/api/daily-reports/{report_id}/workers/w1', json={'man_day': -1}).status_code == 422


def test_responsible_team_and_role_check(client):
    client.post('/api/companies', json={'id': 'c1', 'name': '다원건설', 'type': 'constructor'})
    client.post('/api/companies', json={'id': 'p1', 'name': '한빛', 'type': 'partner'})
    client.post('/api/teams', json={'id': 't1', 'name': '1팀', 'company_id': 'stale', 'company_name': '다원건설'})
    client.post('/api/sites', json={'id': 's1', 'name': '강남현장', 'client_company_id': 'p1'})

    res = client.post('/api/sites/s1/responsible-team', json={'team_id': 't1'})
    assert res.status_code == 200
    body = res.json()
    assert body['repaired'] is True
    assert body['site']['constructor_company_id'] == 'c1'
    assert client.get('/api/teams/t1').json()['company_id'] == 'c1'

    client.patch('/api/sites/s1', json={'client_company_id': 'p1'})
    check = client.get('/api/sites/s1/role-check').json()
    assert check['mismatched_fields'] == ['client_company_id']
    assert client.post('/api/sites/missing/responsible-team', json={'team_id': 't1'}).status_code == 404


def test_component_settings(client):
    components = client.get('/api/settings/components').json()
    assert 'weather-widget' in components
    res = client.post('/api/settings/components/weather-widget', json={'is_enabled': False})
    assert res.json()['is_enabled'] is False
    assert client.get('/api/settings/components').json()['weather-widget']['is_enabled'] is False


def test_payroll_settings(client):
    assert len(client.get('/api/settings/payroll').json()['deduction_items']) == 10
    res = client.post('/api/settings/payroll', json={'deduction_items': [{'id': 'meal', 'label': '식대'}]})
    assert res.status_code == 200
    assert client.get('/api/settings/payroll').json()['deduction_items'][0]['label'] == '식대'


def test_import_endpoints(client):
    res = client.post('/api/import/sites', json={'rows': [{'현장명': '판교현장'}, {'현장명': '판교 현장'}]})
    assert res.json() == {'success': 1, 'failed': 1, 'errors': ['2행: 이미 등록된 현장입니다: 판교 현장']}


def test_duplicate_id_is_a_conflict(client):
    assert client.post('/api/workers', json={'id': 'w1', 'name': 'a'}).status_code == 200
    res = client.post('/api/workers', json={'id': 'w1', 'name': 'b'})
    assert res.status_code == 409
    assert client.get('/api/workers/w1').json()['name'] == 'a'
